from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session

from flashgen.db import get_session
from flashgen.errors import InvalidRequest, SetNotFound
from flashgen.middleware.rate_limit import general_api_limit
from flashgen.schemas import SavedSetList, SavedSetRead, SavedSetWrite
from flashgen.services.sets_repository import SetRepository


router = APIRouter(prefix="/users/{user_id}/sets", tags=["sets"])


def _set_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise InvalidRequest("Please enter a name for your flashcard set.")
    return name


@router.get("", response_model=SavedSetList)
@general_api_limit()
def list_sets(request: Request, user_id: str, session: Session = Depends(get_session)):
    return SavedSetList(sets=SetRepository(session).get_user_sets(user_id))


@router.get("/{name}", response_model=SavedSetRead)
@general_api_limit()
def get_set(request: Request, user_id: str, name: str, session: Session = Depends(get_session)):
    saved = SetRepository(session).get_set(user_id, _set_name(name))
    if saved is None:
        raise SetNotFound()
    return saved


@router.put("/{name}", response_model=SavedSetRead)
@general_api_limit()
def save_set(request: Request, user_id: str, name: str, body: SavedSetWrite, session: Session = Depends(get_session)):
    return SetRepository(session).save_set(user_id, _set_name(name), body.flashcards)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
@general_api_limit()
def delete_set(request: Request, user_id: str, name: str, session: Session = Depends(get_session)):
    if not SetRepository(session).delete_set(user_id, _set_name(name)):
        raise SetNotFound()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
