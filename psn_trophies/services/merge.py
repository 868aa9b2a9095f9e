"""Combine static trophy definitions with the caller's earned records."""

from typing import Dict, List, Optional, Sequence

from psn_trophies.schemas.trophy import (
    DEFAULT_GROUP_ID,
    EarnedRecord,
    MergedTrophy,
    TrophyDefinition,
)

DEFAULT_EARNED_RATE = "0.0"


def _find_record(trophy_id: int, records: Sequence[EarnedRecord]) -> Optional[EarnedRecord]:
    # Titles carry at most a few hundred trophies; a scan is fine
    for record in records:
        if record.trophy_id == trophy_id:
            return record
    return None


def merge(
    definitions: Sequence[TrophyDefinition],
    earned_records: Sequence[EarnedRecord],
) -> List[MergedTrophy]:
    """Produce one merged trophy per definition.

    Definitions decide which trophies exist; earned records without a
    matching definition are dropped. Output order is not significant.
    """
    merged = []
    for definition in definitions:
        record = _find_record(definition.trophy_id, earned_records)

        fields = definition.model_dump()
        if record is not None:
            fields["earned"] = record.earned
            fields["earned_date_time"] = record.earned_date_time
            fields["trophy_earned_rate"] = (
                record.trophy_earned_rate
                or definition.trophy_earned_rate
                or DEFAULT_EARNED_RATE
            )
        else:
            fields["earned"] = False
            fields["earned_date_time"] = None
            fields["trophy_earned_rate"] = definition.trophy_earned_rate or DEFAULT_EARNED_RATE

        merged.append(MergedTrophy(**fields))
    return merged


def _earned_rate(trophy: MergedTrophy) -> float:
    try:
        return float(trophy.trophy_earned_rate or 0)
    except ValueError:
        return 0.0


def sort_by_rarity(trophies: Sequence[MergedTrophy]) -> List[MergedTrophy]:
    """Rarest first (ascending earned rate)"""
    return sorted(trophies, key=_earned_rate)


def group_by(trophies: Sequence[MergedTrophy]) -> Dict[str, List[MergedTrophy]]:
    """Partition trophies by group id; ungrouped trophies land in ``default``"""
    groups: Dict[str, List[MergedTrophy]] = {}
    for trophy in trophies:
        groups.setdefault(trophy.trophy_group_id or DEFAULT_GROUP_ID, []).append(trophy)
    return groups
