"""Species API endpoints with CRUD."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nursery.auth import require_admin, require_manager, require_staff
from nursery.database import get_db
from nursery.models import Batch, Species, User
from nursery.schemas import ApiResponse, SpeciesCreate, SpeciesOut, SpeciesUpdate

router = APIRouter(prefix="/species", tags=["species"])


def _batch_count(db: Session, species_id: UUID) -> int:
    return db.query(func.count(Batch.id)).filter(Batch.species_id == species_id).scalar()


def _out(db: Session, species: Species) -> SpeciesOut:
    out = SpeciesOut.model_validate(species)
    out.batch_count = _batch_count(db, species.id)
    return out


def _ensure_unique(db: Session, name: Optional[str], scientific_name: Optional[str], exclude_id=None) -> None:
    clauses = []
    if name:
        clauses.append(func.lower(Species.name) == name.lower())
    if scientific_name:
        clauses.append(func.lower(Species.scientific_name) == scientific_name.lower())
    if not clauses:
        return
    query = db.query(Species).filter(or_(*clauses))
    if exclude_id is not None:
        query = query.filter(Species.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail="Species with this name or scientific name already exists")


@router.get("", response_model=ApiResponse[List[SpeciesOut]])
def list_species(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    query = db.query(Species)
    if not include_inactive:
        query = query.filter(Species.is_active.is_(True))
    return ApiResponse[List[SpeciesOut]](data=[_out(db, s) for s in query.order_by(Species.name).all()])


@router.post("", response_model=ApiResponse[SpeciesOut], status_code=201)
def create_species(
    data: SpeciesCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    _ensure_unique(db, data.name, data.scientific_name)
    species = Species(
        name=data.name,
        scientific_name=data.scientific_name,
        target_girth=data.target_girth,
        target_height=data.target_height,
    )
    try:
        db.add(species)
        db.commit()
        db.refresh(species)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Species with this name or scientific name already exists")
    return ApiResponse[SpeciesOut](data=_out(db, species), message="Species created successfully")


@router.get("/{species_id}", response_model=ApiResponse[SpeciesOut])
def get_species(
    species_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    species = db.get(Species, species_id)
    if not species:
        raise HTTPException(status_code=404, detail="Species not found")
    return ApiResponse[SpeciesOut](data=_out(db, species))


@router.put("/{species_id}", response_model=ApiResponse[SpeciesOut])
def update_species(
    species_id: UUID,
    data: SpeciesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Names are frozen once batches reference the species; targets stay editable."""
    species = db.get(Species, species_id)
    if not species:
        raise HTTPException(status_code=404, detail="Species not found")

    renaming = (data.name is not None and data.name != species.name) or (
        data.scientific_name is not None and data.scientific_name != species.scientific_name
    )
    if renaming:
        if _batch_count(db, species.id):
            raise HTTPException(status_code=409, detail="Cannot rename a species that is used by batches")
        _ensure_unique(db, data.name, data.scientific_name, exclude_id=species.id)

    if data.name is not None:
        species.name = data.name
    if data.scientific_name is not None:
        species.scientific_name = data.scientific_name
    if data.target_girth is not None:
        species.target_girth = data.target_girth
    if data.target_height is not None:
        species.target_height = data.target_height
    if data.is_active is not None:
        species.is_active = data.is_active

    try:
        db.commit()
        db.refresh(species)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Species with this name or scientific name already exists")
    return ApiResponse[SpeciesOut](data=_out(db, species), message="Species updated successfully")


@router.delete("/{species_id}", response_model=ApiResponse[None])
def delete_species(
    species_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    species = db.get(Species, species_id)
    if not species:
        raise HTTPException(status_code=404, detail="Species not found")
    if _batch_count(db, species.id):
        raise HTTPException(status_code=409, detail="Cannot delete species with existing batches")

    db.delete(species)
    db.commit()
    return ApiResponse[None](message="Species deleted successfully")
