"""
In-memory entity directory.

The lookup tables are built once when the directory is constructed and are
never mutated afterwards; callers receive the directory as an injected
dependency rather than reaching for module state.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from .models import Entity

logger = logging.getLogger(__name__)

SAMPLE_ENTITIES: List[Dict[str, Any]] = [
    {
        "id": "9700150093632",
        "name": "イチゴイチエ・コンサルティング・インコーポレーテッド",
        "keywords": [
            "フィリピン人材特化コンサルティング",
            "特定技能人材コンサルティングサービス",
            "技術・人文・国際人材コンサルティングサービス",
            "インターンシップ・留学生コンサルティング",
            "技能実習生介護職コンサルティングサービス",
            "オリジナル日本語教育プログラム",
        ],
        "related": [
            "株式会社ミネルバ",
            "フジ技研株式会社",
            "Ｚｅｎｋｅｎ株式会社",
            "株式会社ＥＮＥＸコンサルティング",
            "株式会社リアン",
            "株式会社グローカル",
            "株式会社ポテンシャライト",
            "株式会社ＨＲｔｅａｍ",
        ],
    },
    {
        "id": "9700150084994",
        "name": "台湾中小企業銀行股份有限公司",
        "keywords": [
            "中小企業向け金融サービス",
            "商業銀行業務",
            "中小企業融資",
            "企業金融ソリューション",
            "台湾市場特化",
        ],
        "related": [
            "株式会社北洋銀行",
            "西京信用金庫",
            "株式会社西京銀行",
            "株式会社四国銀行",
            "株式会社日本政策金融公庫",
            "京都中央信用金庫",
            "株式会社商工組合中央金庫",
        ],
    },
]

# Annual revenue band per company name, covering peers that have no entry of
# their own.
SAMPLE_REVENUE_RANGES: Dict[str, str] = {
    "株式会社ミネルバ": "1億円〜10億円",
    "フジ技研株式会社": "10億円〜50億円",
    "Ｚｅｎｋｅｎ株式会社": "1億円〜10億円",
    "株式会社ＥＮＥＸコンサルティング": "1億円未満",
    "株式会社リアン": "1億円〜10億円",
    "株式会社北洋銀行": "1000億円以上",
    "西京信用金庫": "100億円〜500億円",
    "株式会社西京銀行": "100億円〜500億円",
    "株式会社四国銀行": "500億円〜1000億円",
    "株式会社日本政策金融公庫": "1000億円以上",
}


class InMemoryEntityDirectory:
    """Read-only entity directory keyed by id and by exact name."""

    def __init__(
        self,
        entities: Iterable[Union[Entity, Mapping[str, Any]]],
        revenue_ranges: Optional[Mapping[str, str]] = None,
    ) -> None:
        by_id: Dict[str, Entity] = {}
        by_name: Dict[str, Entity] = {}
        for raw in entities:
            entity = raw if isinstance(raw, Entity) else Entity.model_validate(raw)
            if entity.id in by_id:
                logger.warning("Duplicate entity id '%s' in directory source; keeping the first.", entity.id)
                continue
            by_id[entity.id] = entity
            by_name.setdefault(entity.name, entity)
        self._by_id: Mapping[str, Entity] = MappingProxyType(by_id)
        self._by_name: Mapping[str, Entity] = MappingProxyType(by_name)
        ranges = {entity.name: entity.revenue_range for entity in by_id.values() if entity.revenue_range}
        ranges.update(revenue_ranges or {})
        self._revenue_ranges: Mapping[str, str] = MappingProxyType(ranges)
        logger.info("Entity directory loaded with %d entities", len(by_id))

    @classmethod
    def with_sample_data(cls) -> "InMemoryEntityDirectory":
        return cls(SAMPLE_ENTITIES, SAMPLE_REVENUE_RANGES)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryEntityDirectory":
        """Load entities from a JSON file.

        The file holds either a list of entities or an object with an
        ``entities`` list and an optional ``revenue_ranges`` name-to-band map.
        """
        source = Path(path)
        data = json.loads(source.read_text(encoding="utf-8"))
        revenue_ranges: Dict[str, str] = {}
        if isinstance(data, dict):
            revenue_ranges = data.get("revenue_ranges") or {}
            data = data.get("entities", [])
        if not isinstance(revenue_ranges, dict):
            raise ValueError(f"revenue_ranges in {source} must be an object.")
        if not isinstance(data, list):
            raise ValueError(f"Entity directory file {source} must contain a list of entities.")
        try:
            return cls(data, {str(name): str(band) for name, band in revenue_ranges.items()})
        except ValidationError as exc:
            raise ValueError(f"Invalid entity in {source}: {exc}") from exc

    def __len__(self) -> int:
        return len(self._by_id)

    async def find_by_id(self, entity_id: str) -> Optional[Entity]:
        return self._by_id.get(entity_id)

    async def find_by_name(self, name: str) -> Optional[Entity]:
        return self._by_name.get(name)

    async def related_entities(self, entity_id: str) -> List[str]:
        entity = self._by_id.get(entity_id)
        return list(entity.related) if entity else []

    async def revenue_ranges(self, entity_id: str) -> Dict[str, str]:
        """Revenue band of each related entity of ``entity_id`` that has one, in related order."""
        entity = self._by_id.get(entity_id)
        if entity is None:
            return {}
        return {name: self._revenue_ranges[name] for name in entity.related if name in self._revenue_ranges}
