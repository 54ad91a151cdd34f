"""
Static configuration tables consumed by the engine: provider profiles,
per-chain endpoints, verification contracts and status-page feeds.
Nothing here is mutated at runtime.
"""
from __future__ import annotations

from typing import Dict, Optional

import config
from core.types import (
    AssetClass,
    Chain,
    ConsensusQuery,
    Endpoint,
    Provider,
    ProviderName,
    Transport,
)

PROVIDER_PROFILES: Dict[ProviderName, Provider] = {
    ProviderName.ALCHEMY: Provider(
        name=ProviderName.ALCHEMY, color="#3b82f6", free_tier="300M CUs",
        archive=False, trace=True, certs=("SOC2", "GDPR"), base_cost=15, coverage=8,
    ),
    ProviderName.INFURA: Provider(
        name=ProviderName.INFURA, color="#ff5e57", free_tier="100k/day",
        archive=False, trace=True, certs=("SOC2", "HIPAA"), base_cost=20, coverage=12,
    ),
    ProviderName.QUICKNODE: Provider(
        name=ProviderName.QUICKNODE, color="#34e7e4", free_tier="10M Credits",
        archive=False, trace=True, certs=("SOC2",), base_cost=25, coverage=35,
    ),
    ProviderName.COVALENT: Provider(
        name=ProviderName.COVALENT, color="#f59e0b", free_tier="Premium Trial",
        archive=True, trace=False, certs=("SOC2",), base_cost=12, coverage=225,
    ),
    ProviderName.MOBULA: Provider(
        name=ProviderName.MOBULA, color="#8b5cf6", free_tier="Freemium",
        archive=False, trace=False, certs=(), base_cost=10, coverage=45,
    ),
    ProviderName.CODEX: Provider(
        name=ProviderName.CODEX, color="#10b981", free_tier="Free",
        archive=False, trace=False, certs=(), base_cost=5, coverage=30,
    ),
}

_ALCHEMY_HOSTS: Dict[Chain, str] = {
    Chain.ETHEREUM: "eth-mainnet",
    Chain.POLYGON: "polygon-mainnet",
    Chain.ARBITRUM: "arb-mainnet",
    Chain.OPTIMISM: "opt-mainnet",
    Chain.BASE: "base-mainnet",
}

_INFURA_HOSTS: Dict[Chain, str] = {
    Chain.ETHEREUM: "mainnet",
    Chain.POLYGON: "polygon-mainnet",
    Chain.ARBITRUM: "arbitrum-mainnet",
    Chain.OPTIMISM: "optimism-mainnet",
}

_MOBULA_ASSETS: Dict[Chain, str] = {
    Chain.ETHEREUM: "Ethereum",
    Chain.POLYGON: "Polygon",
    Chain.ARBITRUM: "Arbitrum",
}

CODEX_GRAPHQL_URL = "https://graph.codex.io/graphql"
COVALENT_API_BASE = "https://api.covalenthq.com/v1"
MOBULA_API_BASE = "https://api.mobula.io/api/1"


def _keyed(url_template: str, key: Optional[str]) -> Optional[str]:
    return url_template.format(key=key) if key else None


def network_config(chain: Chain) -> Dict[ProviderName, Endpoint]:
    """
    Endpoint table for one chain, built from the keys currently in the
    environment. Providers absent from the table do not serve the chain;
    providers present with url=None serve it but have no key configured.
    """
    table: Dict[ProviderName, Endpoint] = {}

    if chain in _ALCHEMY_HOSTS:
        table[ProviderName.ALCHEMY] = Endpoint(
            url=_keyed(f"https://{_ALCHEMY_HOSTS[chain]}.g.alchemy.com/v2/{{key}}", config.get_alchemy_key()),
            transport=Transport.RPC,
        )
    if chain in _INFURA_HOSTS:
        table[ProviderName.INFURA] = Endpoint(
            url=_keyed(f"https://{_INFURA_HOSTS[chain]}.infura.io/v3/{{key}}", config.get_infura_key()),
            transport=Transport.RPC,
        )
    if chain == Chain.ETHEREUM:
        table[ProviderName.QUICKNODE] = Endpoint(url=config.get_quicknode_url(), transport=Transport.RPC)

    covalent_key = config.get_covalent_key()
    table[ProviderName.COVALENT] = Endpoint(
        url=f"{COVALENT_API_BASE}/{chain.chain_id}/block_v2/latest/" if covalent_key else None,
        transport=Transport.REST,
        api_key=covalent_key,
        key_param="key",
    )

    if chain in _MOBULA_ASSETS:
        mobula_key = config.get_mobula_key()
        table[ProviderName.MOBULA] = Endpoint(
            url=f"{MOBULA_API_BASE}/market/data?asset={_MOBULA_ASSETS[chain]}" if mobula_key else None,
            transport=Transport.REST,
            api_key=mobula_key,
            auth_header=True,
        )

    if chain == Chain.ETHEREUM:
        codex_key = config.get_codex_key()
        table[ProviderName.CODEX] = Endpoint(
            url=CODEX_GRAPHQL_URL if codex_key else None,
            transport=Transport.GRAPHQL,
            api_key=codex_key,
            auth_header=True,
        )
    return table


def resolve_endpoint(chain: Chain, provider: ProviderName) -> Optional[Endpoint]:
    """
    Endpoint for `provider` on `chain`, or None when unsupported.
    Never falls back to another chain's table.
    """
    endpoint = network_config(chain).get(provider)
    if endpoint is None or not endpoint.configured:
        return None
    return endpoint


# Verification contracts for the consensus read, per chain and asset class
CONTRACT_REGISTRY: Dict[Chain, Dict[AssetClass, ConsensusQuery]] = {
    Chain.ETHEREUM: {
        AssetClass.ERC20: ConsensusQuery(
            chain=Chain.ETHEREUM, asset_class=AssetClass.ERC20, target="USDT (Tether)",
            address="0xdAC17F958D2ee523a2206206994597C13D831ec7", method="totalSupply",
        ),
        AssetClass.ERC721: ConsensusQuery(
            chain=Chain.ETHEREUM, asset_class=AssetClass.ERC721, target="BAYC (Bored Ape)",
            address="0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D", method="totalSupply",
        ),
        AssetClass.ERC1155: ConsensusQuery(
            chain=Chain.ETHEREUM, asset_class=AssetClass.ERC1155, target="Adidas Originals",
            address="0x285b71f60a0F8F5e975255F06B22516923254e55", method="uri", params=(0,),
        ),
    },
    Chain.POLYGON: {
        AssetClass.ERC20: ConsensusQuery(
            chain=Chain.POLYGON, asset_class=AssetClass.ERC20, target="USDC (Native)",
            address="0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359", method="totalSupply",
        ),
        AssetClass.ERC721: ConsensusQuery(
            chain=Chain.POLYGON, asset_class=AssetClass.ERC721, target="Lens Protocol Profile",
            address="0xDb46d1Dc155634FbC732f92E853b10B288AD5a1d", method="totalSupply",
        ),
    },
    Chain.ARBITRUM: {
        AssetClass.ERC20: ConsensusQuery(
            chain=Chain.ARBITRUM, asset_class=AssetClass.ERC20, target="ARB Token",
            address="0x912CE59144191C1204E64559FE8253a0e49E6548", method="totalSupply",
        ),
    },
    Chain.OPTIMISM: {
        AssetClass.ERC20: ConsensusQuery(
            chain=Chain.OPTIMISM, asset_class=AssetClass.ERC20, target="OP Token",
            address="0x4200000000000000000000000000000000000042", method="totalSupply",
        ),
    },
}

# Atlassian Statuspage feeds; the aggregators don't publish one in this format
STATUS_ENDPOINTS: Dict[ProviderName, str] = {
    ProviderName.ALCHEMY: "https://status.alchemy.com/api/v2/summary.json",
    ProviderName.INFURA: "https://status.infura.io/api/v2/summary.json",
    ProviderName.QUICKNODE: "https://status.quicknode.com/api/v2/summary.json",
}
