from dataclasses import dataclass, field
from typing import Dict, List, Optional

from errors import UnknownEntity

DEFAULT_BASE_LATENCY_MS = 100


@dataclass(frozen=True)
class Entity:
    id: str
    name: str
    location: str  # "City, Country" or a bare city-state name
    lat: float
    lng: float
    provider: str  # AWS, GCP or Azure
    cloud_region: str
    endpoints: List[str] = field(default_factory=list)
    base_latency_ms: int = DEFAULT_BASE_LATENCY_MS  # typical round trip, used by the mock feed

    def __repr__(self):
        return f"<Entity {self.id} ({self.provider} {self.cloud_region})>"


ENTITIES: List[Entity] = [
    Entity('binance-tokyo', 'Binance', 'Tokyo, Japan', 35.6762, 139.6503, 'AWS', 'ap-northeast-1',
           ['https://api.binance.com/api/v3/ping'], 45),
    Entity('binance-virginia', 'Binance', 'Virginia, USA', 37.4316, -78.6569, 'AWS', 'us-east-1',
           ['https://api.binance.us/api/v3/ping'], 85),
    Entity('bybit-singapore', 'Bybit', 'Singapore', 1.3521, 103.8198, 'AWS', 'ap-southeast-1',
           ['https://api.bybit.com/v5/market/time'], 52),
    Entity('okx-singapore', 'OKX', 'Singapore', 1.3521, 103.8198, 'AWS', 'ap-southeast-1',
           ['https://www.okx.com/api/v5/public/time'], 48),
    Entity('deribit-amsterdam', 'Deribit', 'Amsterdam, Netherlands', 52.3676, 4.9041, 'GCP', 'europe-west4',
           ['https://www.deribit.com/api/v2/public/get_time'], 95),
    Entity('kraken-frankfurt', 'Kraken', 'Frankfurt, Germany', 50.1109, 8.6821, 'AWS', 'eu-central-1',
           ['https://api.kraken.com/0/public/Time'], 88),
    Entity('coinbase-virginia', 'Coinbase', 'Virginia, USA', 37.4316, -78.6569, 'AWS', 'us-east-1',
           ['https://api.coinbase.com/v2/time'], 82),
    Entity('bitfinex-london', 'Bitfinex', 'London, UK', 51.5074, -0.1278, 'Azure', 'uk-south',
           ['https://api-pub.bitfinex.com/v2/platform/status'], 92),
    Entity('huobi-tokyo', 'Huobi', 'Tokyo, Japan', 35.6762, 139.6503, 'AWS', 'ap-northeast-1',
           ['https://api.huobi.pro/v1/common/timestamp'], 47),
    Entity('kucoin-singapore', 'KuCoin', 'Singapore', 1.3521, 103.8198, 'AWS', 'ap-southeast-1',
           ['https://api.kucoin.com/api/v1/timestamp'], 50),
    Entity('gateio-seoul', 'Gate.io', 'Seoul, South Korea', 37.5665, 126.9780, 'AWS', 'ap-northeast-2',
           ['https://api.gateio.ws/api/v4/spot/time'], 55),
    Entity('mexc-singapore', 'MEXC', 'Singapore', 1.3521, 103.8198, 'GCP', 'asia-southeast1',
           ['https://api.mexc.com/api/v3/ping'], 53),
]

# Lookup by entity id
CATALOG: Dict[str, Entity] = {e.id: e for e in ENTITIES}


def get_entity(entity_id: str) -> Entity:
    try:
        return CATALOG[entity_id]
    except KeyError:
        raise UnknownEntity(entity_id) from None


def provider_of(entity_id: str) -> Optional[str]:
    entity = CATALOG.get(entity_id)
    return entity.provider if entity else None


def location_of(entity_id: str) -> Optional[str]:
    entity = CATALOG.get(entity_id)
    return entity.location if entity else None
