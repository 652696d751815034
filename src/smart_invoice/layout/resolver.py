"""Resolve a template's cell layout from a mapping or free-form instructions."""

import asyncio

import structlog

from smart_invoice.config import get_settings
from smart_invoice.layout.hints import LayoutHintProvider, NullHintProvider
from smart_invoice.layout.parser import detect_styling_disabled, parse_layout
from smart_invoice.layout.types import CellLayout, ColumnMapping, LayoutSource

logger = structlog.get_logger(__name__)


class CellLayoutResolver:
    """Picks the layout source in priority order.

    1. An explicit ``ColumnMapping`` is trusted as-is.
    2. The hint provider, bounded by ``hint_timeout``.
    3. The local parser, which always answers.

    ``resolve`` never raises; an unresolved layout is returned instead.
    """

    def __init__(
        self,
        hint_provider: LayoutHintProvider | None = None,
        hint_timeout: float | None = None,
    ):
        settings = get_settings()
        self._hint_provider = hint_provider or NullHintProvider()
        self._hint_timeout = hint_timeout if hint_timeout is not None else settings.hint_timeout

    async def _hint(
        self,
        prompt: str,
        working_days: list[str],
        client_name: str | None,
        month: str | None,
        hours_per_day: float,
    ) -> CellLayout | None:
        try:
            draft = await asyncio.wait_for(
                self._hint_provider.suggest(prompt, working_days, client_name, month),
                timeout=self._hint_timeout,
            )
        except TimeoutError:
            logger.warning("layout_hint_timeout", timeout=self._hint_timeout)
            return None
        except Exception as e:
            logger.warning("layout_hint_failed", error=str(e), error_type=type(e).__name__)
            return None

        if draft is None or draft.is_empty:
            return None

        try:
            layout = draft.build(LayoutSource.HINT, hours_per_day)
        except ValueError as e:
            logger.warning("layout_hint_invalid", error=str(e))
            return None
        return layout if layout.is_resolved else None

    async def resolve(
        self,
        prompt: str | None = None,
        column_mapping: ColumnMapping | None = None,
        *,
        working_days: list[str] | None = None,
        client_name: str | None = None,
        month: str | None = None,
        hours_per_day: float | None = None,
    ) -> CellLayout:
        hours = hours_per_day or get_settings().default_hours_per_day
        styling_disabled = detect_styling_disabled(prompt)
        log = logger.bind(client=client_name, month=month)

        if column_mapping is not None:
            log.debug("layout_from_mapping")
            return CellLayout.from_mapping(column_mapping, hours, styling_disabled)

        if not prompt or not prompt.strip():
            log.info("layout_unresolved", reason="no_instructions")
            return CellLayout.unresolved(hours)

        layout = await self._hint(prompt, list(working_days or []), client_name, month, hours)
        if layout is not None:
            if styling_disabled and not layout.styling_disabled:
                layout = layout.with_styling_disabled()
            log.info("layout_resolved", source=layout.source.value, kind=layout.kind.value)
            return layout

        layout = parse_layout(prompt, hours)
        if layout.is_resolved:
            log.info("layout_resolved", source=layout.source.value, kind=layout.kind.value)
        else:
            log.info("layout_unresolved", reason="no_signal")
        return layout
