"""People endpoints: sellers, agents and title companies."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from landledger.auth.dependencies import CurrentUser
from landledger.portfolio.models import Person
from landledger.portfolio.store import DuplicateEntryError, PortfolioStore

router = APIRouter()


class PersonRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str | None = None
    company: str | None = None
    role: str | None = None
    notes: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, value: Any) -> Any:
        return None if value == "" else value


def _get_store(request: Request) -> PortfolioStore:
    store = getattr(request.app.state, "portfolio_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Portfolio store not available")
    return store


def _get_owned_person(store: PortfolioStore, person_id: str, user_id: str) -> Person:
    person = store.get_person(person_id, user_id)
    if person is None:
        raise HTTPException(status_code=404, detail="Person not found")
    return person


def _with_deals(store: PortfolioStore, person: Person) -> dict[str, Any]:
    return {
        **person.model_dump(mode="json"),
        "deals": [
            {"id": deal.id, "name": deal.name, "role": role.value, "stage": deal.stage.value}
            for role, deal in store.deals_for_person(person.id)
        ],
    }


@router.get("/api/people")
async def list_people(request: Request, user_id: str = CurrentUser) -> list[dict[str, Any]]:
    store = _get_store(request)
    return [_with_deals(store, p) for p in store.list_people(user_id)]


@router.post("/api/people", status_code=201)
async def create_person(
    body: PersonRequest, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    try:
        person = store.add_person(Person(user_id=user_id, **body.model_dump()))
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _with_deals(store, person)


@router.get("/api/people/{person_id}")
async def get_person(person_id: str, request: Request, user_id: str = CurrentUser) -> dict[str, Any]:
    """A person with the deals they take part in and their role in each."""
    store = _get_store(request)
    return _with_deals(store, _get_owned_person(store, person_id, user_id))


@router.put("/api/people/{person_id}")
async def update_person(
    person_id: str, body: PersonRequest, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    person = _get_owned_person(store, person_id, user_id)
    try:
        updated = store.update_person(person, body.model_dump(exclude_unset=True))
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _with_deals(store, updated)


@router.delete("/api/people/{person_id}")
async def delete_person(
    person_id: str, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_person(store, person_id, user_id)
    store.delete_person(person_id)
    return {"deleted": True, "id": person_id}
