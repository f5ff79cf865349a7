from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, List, Tuple


@dataclass(frozen=True)
class BadgeDefinition:
    index: int
    key: str
    name: str
    description: str
    icon: str


TRIPLE_CROWN_CHAMPION = 0
LIGHTNING_FINISHER = 1
ANNUAL_LEGEND = 2
CONSISTENCY_KING = 3
THE_UNSTOPPABLE = 4
DOMINATOR = 5
BEAST_MODE = 6
THE_RECORD_BREAKER = 7
HALL_OF_FAME = 8
THE_IMMORTAL = 9
DYNASTY_BUILDER = 10
THE_JUGGERNAUT = 11

BADGE_CATALOG: Tuple[BadgeDefinition, ...] = (
    BadgeDefinition(
        index=TRIPLE_CROWN_CHAMPION,
        key="triple_crown_champion",
        name="Triple Crown Champion",
        description="Ranked #1 for three consecutive months.",
        icon="/badges/triple-crown-champion.png",
    ),
    BadgeDefinition(
        index=LIGHTNING_FINISHER,
        key="lightning_finisher",
        name="Lightning Finisher",
        description="First to hit the monthly target last month.",
        icon="/badges/lightning-finisher.png",
    ),
    BadgeDefinition(
        index=ANNUAL_LEGEND,
        key="annual_legend",
        name="Annual Legend",
        description="Highest yearly points of all employees.",
        icon="/badges/annual-legend.png",
    ),
    BadgeDefinition(
        index=CONSISTENCY_KING,
        key="consistency_king",
        name="Consistency King",
        description="Top 5 for four consecutive months.",
        icon="/badges/consistency-king.png",
    ),
    BadgeDefinition(
        index=THE_UNSTOPPABLE,
        key="the_unstoppable",
        name="The Unstoppable",
        description="Hit the monthly target before the middle of the month.",
        icon="/badges/the-unstoppable.png",
    ),
    BadgeDefinition(
        index=DOMINATOR,
        key="dominator",
        name="Dominator",
        description="Ranked #1 in three different months.",
        icon="/badges/dominator.png",
    ),
    BadgeDefinition(
        index=BEAST_MODE,
        key="beast_mode",
        name="Beast Mode",
        description="Scored double the monthly target.",
        icon="/badges/beast-mode.png",
    ),
    BadgeDefinition(
        index=THE_RECORD_BREAKER,
        key="the_record_breaker",
        name="The Record Breaker",
        description="Holds the highest single-month score ever recorded.",
        icon="/badges/the-record-breaker.png",
    ),
    BadgeDefinition(
        index=HALL_OF_FAME,
        key="hall_of_fame",
        name="Hall Of Fame",
        description="Top 5 in every month of a full year.",
        icon="/badges/hall-of-fame.png",
    ),
    BadgeDefinition(
        index=THE_IMMORTAL,
        key="the_immortal",
        name="The Immortal",
        description="Top 10 in every month of a full year.",
        icon="/badges/the-immortal.png",
    ),
    BadgeDefinition(
        index=DYNASTY_BUILDER,
        key="dynasty_builder",
        name="Dynasty Builder",
        description="Earned Annual Legend in two different years.",
        icon="/badges/dynasty-builder.png",
    ),
    BadgeDefinition(
        index=THE_JUGGERNAUT,
        key="the_juggernaut",
        name="The Juggernaut",
        description="Met the monthly target three months in a row.",
        icon="/badges/the-juggernaut.png",
    ),
)

BADGES_BY_INDEX: Dict[int, BadgeDefinition] = {badge.index: badge for badge in BADGE_CATALOG}


def get_badge(index: int) -> BadgeDefinition:
    return BADGES_BY_INDEX[index]


def sort_badges(achieved: AbstractSet[int]) -> List[Tuple[BadgeDefinition, bool]]:
    """All badges paired with their achieved flag, achieved ones first."""
    return sorted(
        ((badge, badge.index in achieved) for badge in BADGE_CATALOG),
        key=lambda pair: (not pair[1], pair[0].index),
    )
