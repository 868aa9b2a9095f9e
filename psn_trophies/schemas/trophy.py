"""Trophy catalog schemas.

Field names are snake_case in Python and camelCase on the wire, matching the
PlayStation Network JSON the frontend already understands. Unknown upstream
fields are kept (``extra="allow"``) and passed through untouched.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TrophyType = Literal["platinum", "gold", "silver", "bronze"]

DEFAULT_GROUP_ID = "default"


class PSNModel(BaseModel):
    """Base model for PSN payloads"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class TrophyCounts(PSNModel):
    """Trophy counts per rarity tier"""

    bronze: int = 0
    silver: int = 0
    gold: int = 0
    platinum: int = 0


class TitleSummary(PSNModel):
    """One tracked title as returned by the catalog; never mutated locally."""

    model_config = ConfigDict(frozen=True)

    np_communication_id: str
    np_service_name: Optional[str] = None
    trophy_title_platform: str = ""
    trophy_title_name: str = ""
    trophy_title_icon_url: Optional[str] = None
    defined_trophies: TrophyCounts = Field(default_factory=TrophyCounts)
    earned_trophies: TrophyCounts = Field(default_factory=TrophyCounts)
    progress: int = 0


class TitleList(PSNModel):
    """Page of tracked titles"""

    trophy_titles: List[TitleSummary] = Field(default_factory=list)
    total_item_count: int = 0
    next_offset: Optional[int] = None
    previous_offset: Optional[int] = None

    def find(self, title_id: str) -> Optional[TitleSummary]:
        for title in self.trophy_titles:
            if title.np_communication_id == title_id:
                return title
        return None


class TrophyDefinition(PSNModel):
    """Static per-trophy facts for a title"""

    trophy_id: int
    trophy_name: str = ""
    trophy_detail: str = ""
    trophy_type: TrophyType = "bronze"
    trophy_icon_url: Optional[str] = None
    trophy_group_id: Optional[str] = None
    trophy_earned_rate: Optional[str] = None


class EarnedRecord(PSNModel):
    """User-specific earned status for one trophy"""

    trophy_id: int
    earned: bool = False
    earned_date_time: Optional[str] = None
    trophy_earned_rate: Optional[str] = None


class MergedTrophy(TrophyDefinition):
    """Definition combined with the caller's earned status"""

    earned: bool = False
    earned_date_time: Optional[str] = None
    trophy_name_translated: Optional[str] = None
    trophy_detail_translated: Optional[str] = None


class TrophyGroup(PSNModel):
    """Named subset of a title's trophies (base game or DLC)"""

    trophy_group_id: str
    trophy_group_name: str = ""
    trophy_group_icon_url: Optional[str] = None


class TitleDetail(PSNModel):
    """Response body of the title trophies endpoint"""

    trophies: List[MergedTrophy] = Field(default_factory=list)
    title_name: str
    platform: str = ""
    trophy_groups: Dict[str, str] = Field(default_factory=dict)
