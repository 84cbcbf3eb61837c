"""Dataclass-based domain configuration pattern.

The volume discount vertical defines its limits, defaults, and runtime
switches as frozen dataclasses. This gives you:
- Type safety (IDE autocompletion, mypy checking)
- Default values (sensible out-of-the-box)
- Immutability (frozen=True prevents accidental mutation)
- Easy overrides (from env vars)

Merchant-authored rules are *not* configured here; they arrive per
evaluation as a metafield blob (see verticals.volume_discount.config).
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DiscountLimits:
    """Application-level bounds applied to every evaluation."""

    max_percentage: Decimal = Decimal("80")
    default_percentage: Decimal = Decimal("10")
    default_minimum_quantity: int = 1


@dataclass(frozen=True)
class MetafieldLocation:
    """Where the discount configuration blob lives."""

    namespace: str = "$app:volume-discount"
    key: str = "function-configuration"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ServiceSettings:
    """Complete runtime settings for the volume discount service.

    Usage::

        settings = ServiceSettings.from_env()
        directives = evaluate(cart, config, classes, limits=settings.limits)
    """

    limits: DiscountLimits = field(default_factory=DiscountLimits)
    metafield: MetafieldLocation = field(default_factory=MetafieldLocation)

    service_name: str = "volume-discount"
    verbose: bool = False
    log_json: bool = False
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    otlp_endpoint: str | None = None

    @classmethod
    def default(cls) -> "ServiceSettings":
        """Create settings with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "VOLUME_DISCOUNT_") -> "ServiceSettings":
        """Create settings from environment variables.

        Example: VOLUME_DISCOUNT_MAX_PERCENTAGE=50
        Unparseable or out-of-range values keep their defaults.
        """
        overrides: dict = {}

        max_pct = os.getenv(f"{prefix}MAX_PERCENTAGE")
        if max_pct:
            limits = _parse_limits(max_pct)
            if limits is not None:
                overrides["limits"] = limits

        overrides["verbose"] = _env_flag(f"{prefix}VERBOSE")
        overrides["log_json"] = _env_flag(f"{prefix}LOG_JSON")

        origins = os.getenv("CORS_ORIGINS")
        if origins:
            overrides["cors_origins"] = tuple(
                o.strip() for o in origins.split(",") if o.strip()
            )

        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        if endpoint:
            overrides["otlp_endpoint"] = endpoint

        return cls(**overrides)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("1", "true", "yes")


def _parse_limits(raw: str) -> DiscountLimits | None:
    """Parse a percentage cap; only finite values in (0, 80] are accepted."""
    try:
        cap = Decimal(raw)
    except InvalidOperation:
        return None
    if not cap.is_finite() or not Decimal("0") < cap <= DiscountLimits.max_percentage:
        return None
    return DiscountLimits(max_percentage=cap)
