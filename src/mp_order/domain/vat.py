"""VAT rate lookup by trade lane.

Rules come from settings.VAT_RULES, keyed by (source_region, destination_region) where a
region is the home region or "ROW". Lanes without a rule use settings.VAT_RATE_BPS for
both legs.

    vendor_to_admin_vat_bps   -> Order.vendor_vat_rate_bps (vendor earning, vendor invoice)
    admin_to_customer_vat_bps -> Order.vat_rate_bps        (customer total)
"""

from dataclasses import dataclass

from config.settings import settings
from src.mp_common.regions import normalize_region


@dataclass(frozen=True)
class VatRates:
    vendor_to_admin_bps: int
    admin_to_customer_bps: int


def resolve_vat_rates(vendor_country: str | None, buyer_country: str | None) -> VatRates:
    source = normalize_region(vendor_country)
    destination = normalize_region(buyer_country)
    for rule in settings.VAT_RULES:
        if (
            str(rule.get("source_region", "")).upper() == source.upper()
            and str(rule.get("destination_region", "")).upper() == destination.upper()
        ):
            return VatRates(
                vendor_to_admin_bps=int(rule.get("vendor_to_admin_vat_bps", settings.VAT_RATE_BPS)),
                admin_to_customer_bps=int(
                    rule.get("admin_to_customer_vat_bps", settings.VAT_RATE_BPS)
                ),
            )
    return VatRates(settings.VAT_RATE_BPS, settings.VAT_RATE_BPS)
