"""
Column dictionary administration endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.dependencies import get_actor_id
from app.schemas.column_dictionary import (
    ColumnDefinitionPayload,
    ColumnDefinitionResponse,
    ColumnDefinitionUpdate,
    ColumnDictionaryResponse,
)
from app.services.column_dictionary_service import (
    ColumnDefinitionError,
    ColumnDictionaryService,
    ColumnInUseError,
    ColumnNotFoundError,
    get_column_dictionary_service,
)

router = APIRouter(prefix="/column-dictionary", tags=["column-dictionary"])


@router.get("", response_model=ColumnDictionaryResponse)
def list_columns(
    service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> ColumnDictionaryResponse:
    return ColumnDictionaryResponse(
        columns=[ColumnDefinitionResponse.from_definition(column) for column in service.list_columns()]
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ColumnDefinitionResponse)
def create_column(
    payload: ColumnDefinitionPayload,
    _actor_id: str = Depends(get_actor_id),
    service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> ColumnDefinitionResponse:
    try:
        created = service.create_column(payload.to_definition())
    except ColumnDefinitionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    return ColumnDefinitionResponse.from_definition(created)


@router.get("/{name}", response_model=ColumnDefinitionResponse)
def get_column(
    name: str,
    service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> ColumnDefinitionResponse:
    try:
        column = service.get_column(name)
    except ColumnNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ColumnDefinitionResponse.from_definition(column)


@router.patch("/{name}", response_model=ColumnDefinitionResponse)
def update_column(
    name: str,
    payload: ColumnDefinitionUpdate,
    _actor_id: str = Depends(get_actor_id),
    service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> ColumnDefinitionResponse:
    try:
        updated = service.update_column(name, payload.changes())
    except ColumnNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ColumnInUseError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ColumnDefinitionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    return ColumnDefinitionResponse.from_definition(updated)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_column(
    name: str,
    _actor_id: str = Depends(get_actor_id),
    service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> Response:
    try:
        service.delete_column(name)
    except ColumnNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ColumnInUseError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
