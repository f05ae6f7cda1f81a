"""Public network configuration shown by the site."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from waitlist.settings import Settings, settings


class ExplorerLinks(BaseModel):
    homepage: str
    account: str | None = None  # Route pattern, e.g. /explorer/account/{address}
    tx: str | None = None


class SiteLinks(BaseModel):
    wallet: str
    faucet: str
    status: str
    explorer: str


class NetworkConfig(BaseModel):
    """Chain parameters and site links consumed by the UI."""

    chain_name: str = Field(serialization_alias="chainName")
    token_symbol: str = Field(serialization_alias="tokenSymbol")
    token_decimals: int = Field(serialization_alias="tokenDecimals")
    ss58_prefix: int = Field(serialization_alias="ss58Prefix")
    rpc_ws: str = Field(serialization_alias="rpcWS")
    release_at: str = Field(serialization_alias="releaseAt")
    explorer: ExplorerLinks
    links: SiteLinks


def _iso_utc(value: str) -> str:
    """Normalise an ISO timestamp to UTC with millisecond precision and a Z suffix."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_network_config(config: Settings | None = None) -> NetworkConfig:
    config = config or settings
    return NetworkConfig(
        chain_name=config.chain_name,
        token_symbol=config.token_symbol,
        token_decimals=config.token_decimals,
        ss58_prefix=config.ss58_prefix,
        rpc_ws=config.rpc_ws,
        release_at=_iso_utc(config.release_at),
        explorer=ExplorerLinks(
            homepage="/explorer/",
            account="/explorer/account/{address}",
            tx="/explorer/tx/{hash}",
        ),
        links=SiteLinks(
            wallet="/wallet/",
            faucet="/faucet/",
            status="/status/",
            explorer="/explorer/",
        ),
    )
