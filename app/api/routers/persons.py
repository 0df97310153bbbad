"""
Person record CRUD endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.dependencies import get_actor_id
from app.schemas.person import PersonListResponse, PersonResponse, PersonValuesPayload
from app.services.column_dictionary_service import (
    ColumnDictionaryService,
    get_column_dictionary_service,
)
from app.services.person_service import (
    DuplicateIdentityError,
    PersonNotFoundError,
    PersonService,
    PersonValidationError,
    get_person_service,
)

router = APIRouter(prefix="/persons", tags=["persons"])


@router.get("", response_model=PersonListResponse)
def list_people(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    service: PersonService = Depends(get_person_service),
) -> PersonListResponse:
    people = service.list_people(limit=limit, offset=offset)
    return PersonListResponse(people=[PersonResponse.from_record(person) for person in people])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PersonResponse)
def create_person(
    payload: PersonValuesPayload,
    actor_id: str = Depends(get_actor_id),
    service: PersonService = Depends(get_person_service),
    dictionary_service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> PersonResponse:
    try:
        created = service.create_person(payload.values, dictionary_service.load_snapshot(), actor_id)
    except PersonValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    except DuplicateIdentityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return PersonResponse.from_record(created)


@router.get("/{identity}", response_model=PersonResponse)
def get_person(
    identity: str,
    service: PersonService = Depends(get_person_service),
) -> PersonResponse:
    try:
        person = service.get_person(identity)
    except PersonNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return PersonResponse.from_record(person)


@router.put("/{identity}", response_model=PersonResponse)
def update_person(
    identity: str,
    payload: PersonValuesPayload,
    actor_id: str = Depends(get_actor_id),
    service: PersonService = Depends(get_person_service),
    dictionary_service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> PersonResponse:
    try:
        updated = service.update_person(
            identity,
            payload.values,
            dictionary_service.load_snapshot(),
            actor_id,
        )
    except PersonNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PersonValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    return PersonResponse.from_record(updated)


@router.delete("/{identity}", status_code=status.HTTP_204_NO_CONTENT)
def delete_person(
    identity: str,
    actor_id: str = Depends(get_actor_id),
    service: PersonService = Depends(get_person_service),
) -> Response:
    try:
        service.delete_person(identity, actor_id)
    except PersonNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
