"""Tests for loading client profiles from YAML."""

import pytest

from smart_invoice.config.clients import load_client_profiles, parse_client_profiles

CLIENTS_YAML = """
clients:
  - id: acme
    name: Acme Corp
    daily_rate: 500
    use_holiday_source: true
    invoice_mapping:
      date: F3
      invoice_number: F4
      total_amount: F10
    timesheet_mapping:
      date_column: a
      hours_column: c
      description_column: d
      start_row: 5
      day_off_markers:
        d: Annual leave
  - id: beta
    name: Beta Ltd
    hours_per_day: 7.5
    timesheet_prompt: Dates in column A, hours in column B
"""


class TestParseClientProfiles:
    """Tests for parse_client_profiles."""

    def test_parses_profiles(self):
        """Test profiles and their mappings are loaded."""
        profiles = parse_client_profiles(CLIENTS_YAML)

        acme = profiles["acme"]
        assert acme.name == "Acme Corp"
        assert acme.daily_rate == 500.0
        assert acme.use_holiday_source
        assert acme.invoice_mapping.invoice_number == "F4"
        assert acme.invoice_mapping.description == ""
        assert acme.timesheet_mapping.hours_col == "C"
        assert acme.timesheet_mapping.start_row == 5
        assert acme.timesheet_mapping.day_off_markers == {"D": "Annual leave"}

        beta = profiles["beta"]
        assert beta.daily_rate is None
        assert not beta.has_rate
        assert beta.hours_per_day == 7.5
        assert beta.timesheet_mapping is None

    def test_empty_document(self):
        """Test an empty file yields no profiles."""
        assert parse_client_profiles("") == {}

    @pytest.mark.parametrize(
        ("raw", "message"),
        [
            ("- just a list", "top level must be a mapping"),
            ("clients: nope", "clients must be a list"),
            ("clients:\n  - nope", "must be a mapping"),
            ("clients:\n  - id: a", "missing id/name"),
            ("clients:\n  - {id: a, name: A, daily_rate: lots}", "invalid daily_rate"),
            ("clients:\n  - {id: a, name: A, daily_rate: -5}", "daily_rate must be positive"),
            ("clients:\n  - {id: a, name: A, hours_per_day: 30}", "hours_per_day must be 0-24"),
            ("clients:\n  - {id: a, name: A, invoice_mapping: {vat: B2}}", "unknown"),
            ("clients:\n  - {id: a, name: A, timesheet_mapping: [A]}", "must be a mapping"),
            ("clients:\n  - {id: a, name: A}\n  - {id: a, name: B}", "duplicate client id"),
        ],
    )
    def test_invalid_entries(self, raw, message):
        """Test invalid entries report the source and entry."""
        with pytest.raises(ValueError, match=message):
            parse_client_profiles(raw, source="clients.yaml")


class TestLoadClientProfiles:
    """Tests for load_client_profiles."""

    def test_loads_file(self, tmp_path):
        """Test profiles load from a file path."""
        path = tmp_path / "clients.yaml"
        path.write_text(CLIENTS_YAML, encoding="utf-8")

        profiles = load_client_profiles(path)

        assert set(profiles) == {"acme", "beta"}

    def test_missing_file(self, tmp_path):
        """Test a missing file yields no profiles."""
        assert load_client_profiles(tmp_path / "missing.yaml") == {}
