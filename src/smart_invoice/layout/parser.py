"""Deterministic parser for natural-language timesheet instructions.

Works clause by clause so the order in which a user mentions things does not
matter. Recognises two template shapes:

- horizontal: "day numbers (cells C13 to AG13)", "hours (cells C14 up to AG14)"
- vertical: "dates in column A, hours in column B, start from row 2"
"""

import re

import structlog

from smart_invoice.layout.types import CellLayout, CellRange, LayoutDraft, LayoutSource, RowSpan

logger = structlog.get_logger(__name__)

STANDARD_TIMESHEET_PROMPT = (
    "Update Timesheet period (cell C11) according to the current month "
    "(eg. 01-January-2025 -> 31-January-2025).\n"
    "Delete all existing day numbers (cells c13 to ag13). Update the day numbers "
    "(cells c13 to ag13) to contain the day number of the days of the current month "
    "(c13 always 1).\n"
    "Delete existing work hours (cells c14 up to ag14).\n"
    "Place number 8 (8 hours of work) in the data row (cells c14 up to ag14) "
    "for each of the working days.\n"
    "Do NOT add any extra rows or columns.\n"
    "Finally, use a white background for working days (any working date columns "
    "rows 14-20) and a light gray background for weekends (any weekend date columns "
    "rows 14-20)"
)

# Clause boundaries: sentence dots (not decimal points), semicolons, newlines
CLAUSE_SPLIT_RE = re.compile(r"(?<!\d)\.(?!\d)|[;\n]")

CELL_RANGE_RE = re.compile(
    r"\b([a-z]{1,3})(\d{1,5})\s*(?:to|through|thru|up\s+to|until|-|–|:)\s*([a-z]{1,3})(\d{1,5})\b"
)
CELL_REF_RE = re.compile(r"\b([a-z]{1,3}\d{1,5})\b")
PERIOD_CELL_RE = re.compile(r"\bcell\s+([a-z]{1,3}\d{1,5})\b")
DAY_NUMBERS_RE = re.compile(r"\bday[\s-]*numbers?\b")
HOURS_WORD_RE = re.compile(r"\b(?:hours?|hrs|data\s+row)\b")
STYLE_ROWS_RE = re.compile(r"\brows?\s+(\d{1,5})\s*(?:-|–|to|through|thru)\s*(\d{1,5})\b")

HOURS_PER_DAY_PATTERNS = [
    re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\s+(?:per|each|a|every|of\s+work)\b"),
    re.compile(r"\bhours?\s+(?:per|each|a)\s+day\s*(?:[:=]|of|is)?\s*(\d+(?:\.\d+)?)"),
    re.compile(r"\bplace\s+(?:the\s+)?number\s+(\d+(?:\.\d+)?)"),
]

NO_STYLING_PATTERNS = [
    re.compile(
        r"\b(?:do\s+not|don't|dont|never|no\s+need\s+to)\s+"
        r"(?:change|modify|touch|alter|update|apply|add|use)\b[^.;\n]{0,30}?"
        r"\b(?:styles?|styling|formatting|formats?|colou?rs?|backgrounds?|fills?)\b"
    ),
    re.compile(
        r"\b(?:without|no)\s+(?:changing\s+|any\s+)?(?:the\s+)?"
        r"(?:styles?|styling|formatting|colou?rs?|background\s+colou?rs?)\b"
    ),
    re.compile(
        r"\bkeep\s+(?:the\s+)?(?:existing|original|current|template)?\s*"
        r"(?:styles?|styling|formatting|colou?rs?)\b"
    ),
]

# A bare column letter only counts when followed by a separator, so that
# "8 hours a day" or "dates in a column" are not read as columns.
_COLUMN_TAIL = (
    r"(?:\s+(?:go|goes|are|is|should\s+be|will\s+be))?"
    r"(?:\s+(?:in|into|on|at|to|under))?(?:\s+the)?\s+"
    r"(?:col(?:umn)?\.?\s+([a-z]{1,3})\b"
    r"|([a-z])(?=\s*(?:[,;.)]|$|\s+and\b|\s+(?:starting|from|with|beginning)\b)))"
)
DATE_COLUMN_RE = re.compile(r"\bdates?\b" + _COLUMN_TAIL, re.MULTILINE)
HOURS_COLUMN_RE = re.compile(r"\b(?:hours?|hrs)\b" + _COLUMN_TAIL, re.MULTILINE)
DESCRIPTION_COLUMN_RE = re.compile(r"\bdesc(?:ription)?s?\b" + _COLUMN_TAIL, re.MULTILINE)
START_ROW_RE = re.compile(
    r"\b(?:(?:start(?:s|ing)?|begin(?:s|ning)?)(?:\s+(?:from|at|on|in))?|from)"
    r"\s+(?:the\s+)?row\s+(\d{1,5})\b"
)

# Marker clauses are matched on the original text so quoted markers keep their case
DAY_OFF_RE = re.compile(r"\b(?:days?[\s-]+off|leave\s+days?|time\s+off)\b", re.IGNORECASE)
QUOTED_TEXT_RE = re.compile(r"[\"“”]([^\"“”]{1,40})[\"“”]")
MARKER_COLUMN_RE = re.compile(
    r"\b(?:in|into|under)\s+(?:the\s+)?(?:col(?:umn)?\s+([a-z]{1,3})\b|([a-z])\b)(?!\d)",
    re.IGNORECASE,
)


def split_clauses(text: str) -> list[str]:
    return [clause.strip() for clause in CLAUSE_SPLIT_RE.split(text) if clause.strip()]


def _same_row_ranges(clause: str) -> list[tuple[int, CellRange]]:
    """Single-row ranges in ``clause`` with their offsets."""
    ranges = []
    for match in CELL_RANGE_RE.finditer(clause):
        start_col, start_row, end_col, end_row = match.groups()
        if start_row != end_row:
            continue
        try:
            ranges.append((match.start(), CellRange(int(start_row), start_col, end_col)))
        except ValueError:
            continue
    return ranges


def _range_role(clause: str, offset: int) -> str | None:
    """``days`` or ``hours``, by the keyword closest before ``offset``.

    Ranges with no keyword before them take the clause's overall topic.
    """
    prefix = clause[:offset]
    days_at = max((m.end() for m in DAY_NUMBERS_RE.finditer(prefix)), default=-1)
    hours_at = max((m.end() for m in HOURS_WORD_RE.finditer(prefix)), default=-1)
    if days_at >= 0 or hours_at >= 0:
        return "days" if days_at > hours_at else "hours"
    if DAY_NUMBERS_RE.search(clause):
        return "days"
    if HOURS_WORD_RE.search(clause):
        return "hours"
    return None


def _is_standard_convention(cell_range: CellRange) -> bool:
    return cell_range.start_col == "C" and cell_range.end_col == "AG" and cell_range.row in (13, 14)


def is_standard_horizontal_prompt(prompt: str) -> bool:
    """True when the prompt references the stock C11 / C13:AG13 / C14:AG14 template."""
    normalized = re.sub(r"\s+", " ", (prompt or "").lower())
    return all(token in normalized for token in ("period", "c11", "c13", "ag13", "c14", "ag14"))


def detect_styling_disabled(prompt: str | None) -> bool:
    text = (prompt or "").lower()
    return any(pattern.search(text) for pattern in NO_STYLING_PATTERNS)


def parse_hours_per_day(text: str) -> float | None:
    for pattern in HOURS_PER_DAY_PATTERNS:
        match = pattern.search(text)
        if match:
            value = float(match.group(1))
            if 0 < value <= 24:
                return value
    return None


def _column_from(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if not match:
        return None
    return (match.group(1) or match.group(2)).upper()


def _parse_horizontal(clauses: list[str], text: str, draft: LayoutDraft) -> None:
    day_candidates: list[CellRange] = []
    hour_candidates: list[CellRange] = []
    all_ranges: list[CellRange] = []

    for clause in clauses:
        for offset, cell_range in _same_row_ranges(clause):
            all_ranges.append(cell_range)
            role = _range_role(clause, offset)
            if role == "days":
                day_candidates.append(cell_range)
            elif role == "hours":
                hour_candidates.append(cell_range)

    if not all_ranges:
        return

    mentions_day_numbers = DAY_NUMBERS_RE.search(text) is not None
    if not (mentions_day_numbers or any(_is_standard_convention(r) for r in all_ranges)):
        return

    day_range = day_candidates[0] if day_candidates else all_ranges[0]
    draft.day_number_range = day_range
    draft.hours_range = next(
        (r for r in hour_candidates if r.row != day_range.row),
        None,
    )

    for clause in clauses:
        if "period" not in clause or CELL_RANGE_RE.search(clause):
            continue
        match = PERIOD_CELL_RE.search(clause) or CELL_REF_RE.search(clause)
        if match:
            draft.period_cell = match.group(1).upper()
            break

    style_match = STYLE_ROWS_RE.search(text)
    if style_match:
        draft.style_rows = RowSpan(int(style_match.group(1)), int(style_match.group(2)))


def _parse_day_off_markers(clauses: list[str], draft: LayoutDraft) -> None:
    for clause in clauses:
        if not DAY_OFF_RE.search(clause):
            continue
        quoted = QUOTED_TEXT_RE.search(clause)
        if not quoted:
            continue
        column_match = MARKER_COLUMN_RE.search(clause, quoted.end())
        column = None
        if column_match:
            column = (column_match.group(1) or column_match.group(2)).upper()
        column = column or draft.description_col or draft.hours_col or "B"
        draft.day_off_markers[column] = quoted.group(1).strip()


def _parse_vertical(original_clauses: list[str], text: str, draft: LayoutDraft) -> None:
    draft.date_col = _column_from(DATE_COLUMN_RE, text)
    draft.hours_col = _column_from(HOURS_COLUMN_RE, text)
    draft.description_col = _column_from(DESCRIPTION_COLUMN_RE, text)

    start_match = START_ROW_RE.search(text)
    if start_match:
        draft.start_row = int(start_match.group(1))

    if draft.has_vertical_signal:
        _parse_day_off_markers(original_clauses, draft)


def parse_instructions(prompt: str | None) -> LayoutDraft:
    """Extract every layout signal present in a free-form instruction text."""
    text = (prompt or "").lower()
    draft = LayoutDraft()
    if not text.strip():
        return draft

    clauses = split_clauses(text)
    draft.hours_per_day = parse_hours_per_day(text)
    draft.styling_disabled = detect_styling_disabled(text)

    _parse_horizontal(clauses, text, draft)
    if not draft.has_horizontal_signal:
        _parse_vertical(split_clauses(prompt or ""), text, draft)

    return draft


def parse_layout(prompt: str | None, default_hours_per_day: float = 8.0) -> CellLayout:
    """Parse instructions into a ``CellLayout``; never raises.

    Returns an unresolved layout when the text carries no location signal.
    """
    try:
        draft = parse_instructions(prompt)
    except (ValueError, re.error) as e:
        logger.warning("local_parse_failed", error=str(e))
        return CellLayout.unresolved(default_hours_per_day)

    layout = draft.build(LayoutSource.LOCAL, default_hours_per_day)
    logger.debug("local_layout_parsed", kind=layout.kind.value)
    return layout
