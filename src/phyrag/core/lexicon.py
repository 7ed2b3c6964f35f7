"""Domain lexicon: entity patterns, category membership, synonym and intent rule tables."""

import os
import re
import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Pattern

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# ASCII word boundaries so that CJK neighbours count as boundaries
# ("车规TX", "型号8522怎么样").
PATTERN_FLAGS = re.IGNORECASE | re.ASCII


class Intent(str, Enum):
    """Query intent tags. A query may carry several."""
    SELECTION = "selection"
    AUTOMOTIVE = "automotive"
    TROUBLESHOOTING = "troubleshooting"
    COMPARISON = "comparison"
    GENERAL = "general"


class IntentRule(BaseModel):
    """Keyword pattern that tags a query with an intent."""
    model_config = ConfigDict(frozen=True)

    tag: Intent
    pattern: str


class ExpansionRule(BaseModel):
    """Synonym tokens appended when ``trigger`` matches and ``unless`` does not."""
    model_config = ConfigDict(frozen=True)

    name: str
    trigger: str
    tokens: List[str]
    unless: Optional[str] = None


class EntityCategory(BaseModel):
    """A mutually exclusive product family.

    ``members`` lists the entity codes that belong to the category. A category
    marked ``default`` owns every entity not listed by another category.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    trigger: str
    members: List[str] = Field(default_factory=list)
    default: bool = False


class Lexicon(BaseModel):
    """Immutable lookup tables shared by every query-understanding component."""
    model_config = ConfigDict(frozen=True)

    name: str = "default"
    entity_prefix: str = "YT"
    entity_pattern: str = r"YT\d{3,4}[A-Z]*"
    short_code_pattern: str = r"\b\d{4}\b"
    short_code_min: int = 8500
    short_code_max: int = 8599
    entity_joiner: str = "和"
    categories: List[EntityCategory] = Field(default_factory=list)
    expansions: List[ExpansionRule] = Field(default_factory=list)
    intents: List[IntentRule] = Field(default_factory=list)
    catalog_source_pattern: str = r"Selection\s*Guide|选型"
    general_source_pattern: str = r"Q&A|Debug|Troubleshoot|FAQ|问答|调试|故障"
    regulatory_markers: List[str] = Field(default_factory=lambda: ["Automotive", "AEC-Q100", "车规"])
    regulatory_query: str = "Automotive AEC-Q100 车规"

    def category_of(self, entity: str) -> Optional[EntityCategory]:
        """Return the category an entity belongs to, if any."""
        code = entity.upper()
        for category in self.categories:
            if code in (m.upper() for m in category.members):
                return category
        for category in self.categories:
            if category.default:
                return category
        return None

    def is_catalog_source(self, source: str) -> bool:
        return bool(compile_pattern(self.catalog_source_pattern).search(source))

    def is_general_source(self, source: str) -> bool:
        return bool(compile_pattern(self.general_source_pattern).search(source))


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Pattern[str]:
    """Compile a lexicon pattern with the shared flags."""
    return re.compile(pattern, PATTERN_FLAGS)


def matches(pattern: Optional[str], text: str) -> bool:
    if not pattern:
        return False
    return bool(compile_pattern(pattern).search(text))


def get_default_lexicon() -> Lexicon:
    """Built-in lexicon for the YT Ethernet PHY family."""
    categories = [
        EntityCategory(
            name="tx",
            trigger=r"\bTX\b",
            default=True,
        ),
        EntityCategory(
            name="t1",
            trigger=r"\bT1\b",
            members=["YT8010A", "YT8010AN", "YT8011A", "YT8011AN", "YT8011AR"],
        ),
    ]

    expansions = [
        ExpansionRule(name="consumer_grade", trigger=r"商规", tokens=["消费级"]),
        ExpansionRule(name="gigabit", trigger=r"千兆", tokens=["GE", "1GE"]),
        ExpansionRule(name="fast_ethernet", trigger=r"百兆", tokens=["FE", "100M"]),
        ExpansionRule(
            name="pin_compatibility",
            trigger=r"pin\s*2?\s*pin|引脚兼容|硬件兼容",
            tokens=["引脚", "封装", "package", "pin", "硬件兼容", "替换"],
        ),
        ExpansionRule(
            name="clock",
            trigger=r"时钟|晶振|晶体|频率",
            tokens=["clock", "crystal", "oscillator", "CLKIN", "XTAL", "frequency", "频率", "晶振"],
        ),
        ExpansionRule(
            name="power",
            trigger=r"电源|供电|上电",
            tokens=["power", "supply", "VDD", "voltage", "电压"],
        ),
        ExpansionRule(name="reset", trigger=r"复位|重启", tokens=["reset", "RST", "NRST"]),
        ExpansionRule(
            name="automotive",
            trigger=r"车规|车载|汽车",
            tokens=["Automotive", "AEC-Q100", "车规", "车载"],
        ),
        ExpansionRule(
            name="interface",
            trigger=r"\bTX\b",
            unless=r"\bT1\b",
            tokens=["SGMII", "RGMII", "MII", "MAC", "interface", "传输接口", "TX接口"],
        ),
        ExpansionRule(
            name="single_pair_bus",
            trigger=r"\bT1\b",
            unless=r"\bTX\b|不是.*T1|非T1|排除.*T1",
            tokens=["100BASE-T1", "automotive", "ethernet"],
        ),
    ]

    intents = [
        IntentRule(
            tag=Intent.SELECTION,
            pattern=r"推荐|选型|有哪些|什么型号|选择|适合|可以用|有没有|建议|recommend|which models?",
        ),
        IntentRule(tag=Intent.AUTOMOTIVE, pattern=r"车规|automotive|AEC-Q100|车载"),
        IntentRule(
            tag=Intent.TROUBLESHOOTING,
            pattern=r"丢包|link不通|不通|连接失败|调试|排查|故障|debug|troubleshoot|issue|problem|error|fail",
        ),
        IntentRule(
            tag=Intent.COMPARISON,
            pattern=r"区别|对比|比较|差异|\bvs\b|versus|compare|difference",
        ),
    ]

    return Lexicon(
        name="yt_phy",
        categories=categories,
        expansions=expansions,
        intents=intents,
    )


def load_lexicon(path: Optional[str] = None) -> Lexicon:
    """Load a lexicon from a JSON file or use the built-in default."""
    if path and Path(path).exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            lexicon = Lexicon(**data)
            logger.info(f"Loaded lexicon '{lexicon.name}' from {path}")
            return lexicon
        except Exception as e:
            logger.warning(f"Failed to load lexicon from {path}: {e}")

    return get_default_lexicon()


def load_lexicon_from_env() -> Lexicon:
    """Load the lexicon named by PHYRAG_LEXICON_PATH, if set."""
    return load_lexicon(os.getenv("PHYRAG_LEXICON_PATH"))
