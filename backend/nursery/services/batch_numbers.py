"""Batch number format: pathway code + YYMMDD + 3-digit daily sequence."""
import re
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from nursery.errors import ValidationError
from nursery.models import Batch, Pathway

PATHWAY_CODES = {
    Pathway.PURCHASING: "PU",
    Pathway.SEED_GERMINATION: "SG",
    Pathway.CUTTING_GERMINATION: "CG",
    Pathway.OUT_SOURCING: "OS",
}

BATCH_NUMBER_RE = re.compile(r"^(PU|SG|CG|OS)\d{6}\d{3}$")


def normalize_batch_number(value: str, pathway: Pathway) -> str:
    """Upper-case and validate a client-supplied batch number.

    The code must match ``pathway`` and the six digits must form a real date.
    """
    number = value.strip().upper()
    if not BATCH_NUMBER_RE.match(number):
        raise ValidationError(
            "Batch number must be a pathway code (PU, SG, CG, OS) followed by YYMMDD and a 3-digit sequence"
        )
    code = PATHWAY_CODES[pathway]
    if number[:2] != code:
        raise ValidationError(f"Batch number for pathway {pathway.value} must start with {code}")
    try:
        datetime.strptime(number[2:8], "%y%m%d")
    except ValueError:
        raise ValidationError(f"Batch number date {number[2:8]} is not a valid YYMMDD date")
    return number


def date_prefix(pathway: Pathway, day: date) -> str:
    return f"{PATHWAY_CODES[pathway]}{day:%y%m%d}"


def generate_batch_number(db: Session, pathway: Pathway, day: Optional[date] = None) -> str:
    """Next free number for ``pathway`` on ``day`` (today by default)."""
    prefix = date_prefix(pathway, day or date.today())
    last = (
        db.query(Batch.batch_number)
        .filter(Batch.batch_number.like(f"{prefix}%"))
        .order_by(Batch.batch_number.desc())
        .first()
    )
    sequence = 1
    if last:
        tail = last[0][-3:]
        if tail.isdigit():
            sequence = int(tail) + 1
    if sequence > 999:
        raise ValidationError(f"Daily batch sequence exhausted for {prefix}")
    return f"{prefix}{sequence:03d}"
