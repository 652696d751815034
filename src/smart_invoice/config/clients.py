"""Utilities for loading client profiles from a YAML file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml  # type: ignore[import-untyped]

from smart_invoice.config.settings import get_settings
from smart_invoice.records import ClientProfile

logger = structlog.get_logger(__name__)

MAPPING_KEYS = {"date", "invoice_number", "description", "days_worked", "daily_rate", "total_amount"}


def _validate_entry(source: str, idx: int, item: Any) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ValueError(f"{source}: clients[{idx}] must be a mapping")

    if not item.get("id") or not item.get("name"):
        raise ValueError(f"{source}: clients[{idx}] missing id/name")

    rate = item.get("daily_rate")
    if rate is not None:
        try:
            rate_value = float(rate)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"{source}: clients[{idx}] invalid daily_rate: {rate!r}"
            ) from exc
        if rate_value <= 0:
            raise ValueError(f"{source}: clients[{idx}] daily_rate must be positive")

    hours = item.get("hours_per_day")
    if hours is not None:
        try:
            hours_value = float(hours)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"{source}: clients[{idx}] invalid hours_per_day: {hours!r}"
            ) from exc
        if not (0 < hours_value <= 24):
            raise ValueError(f"{source}: clients[{idx}] hours_per_day must be 0-24")

    invoice_mapping = item.get("invoice_mapping")
    if invoice_mapping is not None:
        if not isinstance(invoice_mapping, dict):
            raise ValueError(f"{source}: clients[{idx}] invoice_mapping must be a mapping")
        unknown = set(invoice_mapping) - MAPPING_KEYS
        if unknown:
            raise ValueError(
                f"{source}: clients[{idx}] unknown invoice_mapping keys {sorted(unknown)}"
            )

    timesheet_mapping = item.get("timesheet_mapping")
    if timesheet_mapping is not None and not isinstance(timesheet_mapping, dict):
        raise ValueError(f"{source}: clients[{idx}] timesheet_mapping must be a mapping")

    return item


def parse_client_profiles(raw: str, source: str = "<string>") -> dict[str, ClientProfile]:
    """Parse YAML text into client profiles keyed by id."""
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{source}: top level must be a mapping")

    clients = data.get("clients") or []
    if not isinstance(clients, list):
        raise ValueError(f"{source}: clients must be a list")

    profiles: dict[str, ClientProfile] = {}
    for idx, item in enumerate(clients):
        entry = _validate_entry(source, idx, item)
        try:
            profile = ClientProfile.from_dict(entry)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{source}: clients[{idx}] {exc}") from exc

        if profile.id in profiles:
            raise ValueError(f"{source}: duplicate client id {profile.id!r}")
        profiles[profile.id] = profile

    return profiles


def load_client_profiles(path: str | Path | None = None) -> dict[str, ClientProfile]:
    """Load client profiles from YAML.

    Args:
        path: File to read. Defaults to ``CLIENTS_FILE`` from settings.

    Returns:
        Mapping of client id to profile; empty when the file does not exist.
    """
    clients_path = Path(path or get_settings().clients_file)
    if not clients_path.exists():
        logger.warning("clients_file_missing", path=str(clients_path))
        return {}

    profiles = parse_client_profiles(
        clients_path.read_text(encoding="utf-8"), source=clients_path.name
    )
    logger.info("client_profiles_loaded", path=str(clients_path), count=len(profiles))
    return profiles
