"""AssetIds for the configured DEX deployment."""

from config.settings import settings
from src.dex_ledger.domain.models import AssetIds


def configured_assets() -> AssetIds:
    return AssetIds(
        dex_contract_id=settings.dex_contract_id,
        sbtc=settings.sbtc_asset_identifier,
        token=settings.token_asset_identifier,
    )
