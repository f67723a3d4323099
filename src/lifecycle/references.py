from datetime import datetime


def contract_ref_prefix(segment: str, year: int) -> str:
    return f"EG-{segment}-{year}-"


def build_contract_ref(segment: str, year: int, sequence: int) -> str:
    """
    ``EG-<segment>-<year>-<NNN>``. The sequence is zero-padded to at least
    three digits; the 1000th contract of a year gets ``EG-<segment>-<year>-1000``.
    """
    return f"{contract_ref_prefix(segment, year)}{sequence:03d}"


def next_contract_ref(db, segment: str, now: datetime) -> str:
    existing = db.count_contracts_with_ref_prefix(contract_ref_prefix(segment, now.year))
    return build_contract_ref(segment, now.year, existing + 1)
