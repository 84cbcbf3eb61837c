"""Template Engine: formats discount directives into host result payloads.

The engine itself only returns DiscountDirective objects. Each host API
version registers a renderer that turns those into the JSON shape it
expects; the engine dispatches on the format name.

This is useful for:
- Keeping evaluation independent of the wire format
- Serving current and legacy hosts from one code path
- Deterministic output (same directives, same payload)
"""

from decimal import Decimal
from typing import Any, Callable, Dict, Sequence


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

# Values beyond this many digits either side of the point keep exponent form
_MAX_PLAIN_DIGITS = 28


def fmt_decimal(value: Decimal | float | int) -> str:
    """Format a number without exponent or trailing zeros (12.50 -> '12.5')."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        return str(value)
    if abs(value.adjusted()) > _MAX_PLAIN_DIGITS:
        return str(value)
    text = format(value.normalize(), "f")
    return "0" if text in ("-0", "0") else text


def fmt_number(value: Decimal) -> int | float:
    """Convert a decimal to the JSON number the host expects.

    Raises:
        ValueError: If the value is not finite or its exponent is beyond
            28 digits, so a non-zero value never renders as 0.
    """
    if not value.is_finite() or abs(value.adjusted()) > _MAX_PLAIN_DIGITS:
        raise ValueError(f"Cannot render number: {value}")
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# ---------------------------------------------------------------------------
# Renderer type and registry
# ---------------------------------------------------------------------------

ResultRenderer = Callable[[Sequence[Any]], Dict[str, Any]]

_RESULT_RENDERERS: Dict[str, ResultRenderer] = {}


def register_renderer(result_format: str, renderer: ResultRenderer) -> None:
    """Register a renderer for a host result format.

    Example::

        def render_operations(directives):
            return {"operations": [...]}

        register_renderer("operations", render_operations)
    """
    _RESULT_RENDERERS[result_format] = renderer


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class TemplateEngine:
    """Formats directive lists into host result payloads.

    Usage::

        payload = TemplateEngine.render("operations", directives)
    """

    @staticmethod
    def render(result_format: str, directives: Sequence[Any]) -> Dict[str, Any]:
        """Render directives for a host format.

        Raises:
            ValueError: If no renderer is registered for the format.
        """
        renderer = _RESULT_RENDERERS.get(result_format)
        if renderer is None:
            raise ValueError(f"Unknown result format: {result_format}")
        return renderer(directives)

    @staticmethod
    def list_formats() -> list[str]:
        """Return list of formats with registered renderers."""
        return list(_RESULT_RENDERERS.keys())
