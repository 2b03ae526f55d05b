# Overview: Donor registry; assigns the donor codes embedded in book codes.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Donor
from ..validation import NotFoundError, ValidationError
from .concurrency import begin_serialized_write, run_in_transaction
from .sequence_service import DONOR_CODE_SEQUENCE, next_value

# donor_code is assigned by the sequence and never client-writable
DONOR_MUTABLE_FIELDS = {"name", "email", "phone", "address"}


class DonorNotFound(NotFoundError):
    """Raised when a donor id does not reference an existing donor."""


def get_donor(donor_id: int) -> Donor:
    donor = db.session.get(Donor, donor_id)
    if donor is None:
        raise DonorNotFound(f"Donor {donor_id} not found", details={"donor_id": donor_id})
    return donor


def list_donors(active: bool | None = None) -> list[Donor]:
    q = db.session.query(Donor)
    if active is not None:
        q = q.filter(Donor.is_active == active)
    return q.order_by(Donor.name.asc(), Donor.id.asc()).all()


def create_donor(patch: dict) -> Donor:
    """
    Create a donor with the next donor code.

    The code comes from the "donor_code" sequence (seeded at DONOR_CODE_SEED)
    and is allocated in the same transaction as the insert.
    """
    if not (patch.get("name") or "").strip():
        raise ValidationError("name is required")

    def _op():
        begin_serialized_write()
        code = next_value(
            DONOR_CODE_SEQUENCE,
            seed=current_app.config["DONOR_CODE_SEED"],
            floor_column=Donor.donor_code,
        )
        donor = Donor(donor_code=str(code), is_active=True)
        for k, v in patch.items():
            if k in DONOR_MUTABLE_FIELDS:
                setattr(donor, k, v)
        db.session.add(donor)
        db.session.flush()
        return donor

    donor = run_in_transaction(_op, action="Create donor")
    current_app.logger.info("Donor %s created with code %s", donor.id, donor.donor_code)
    return donor


def update_donor(donor_id: int, patch: dict) -> Donor:
    def _op():
        donor = get_donor(donor_id)
        for k, v in patch.items():
            if k not in DONOR_MUTABLE_FIELDS:
                continue
            setattr(donor, k, v)
        return donor

    return run_in_transaction(_op, action="Update donor")


def toggle_donor_status(donor_id: int) -> Donor:
    def _op():
        donor = get_donor(donor_id)
        donor.is_active = not donor.is_active
        return donor

    return run_in_transaction(_op, action="Toggle donor status")
