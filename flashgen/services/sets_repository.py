"""
Per-user storage of named flashcard sets
"""
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
import structlog

from flashgen.models import SavedCard, SavedSet
from flashgen.schemas import Flashcard, SavedSetRead

logger = structlog.get_logger()


class SetRepository:
    """Saving under an existing name replaces that set's cards."""

    def __init__(self, session: Session):
        self.session = session

    def _find(self, user_id: str, name: str) -> Optional[SavedSet]:
        return self.session.exec(
            select(SavedSet).where(SavedSet.user_id == user_id, SavedSet.name == name)
        ).first()

    def _cards(self, set_id: int) -> List[Flashcard]:
        rows = self.session.exec(
            select(SavedCard).where(SavedCard.set_id == set_id).order_by(SavedCard.position)
        ).all()
        return [Flashcard(front=r.front, back=r.back) for r in rows]

    def _clear_cards(self, set_id: int) -> None:
        for row in self.session.exec(select(SavedCard).where(SavedCard.set_id == set_id)).all():
            self.session.delete(row)
        # cards must be gone before the parent row on FK-enforcing databases
        self.session.flush()

    def get_user_sets(self, user_id: str) -> List[str]:
        rows = self.session.exec(
            select(SavedSet).where(SavedSet.user_id == user_id).order_by(SavedSet.created_at, SavedSet.id)
        ).all()
        return [r.name for r in rows]

    def get_set(self, user_id: str, name: str) -> Optional[SavedSetRead]:
        saved = self._find(user_id, name)
        if saved is None:
            return None
        return SavedSetRead(name=saved.name, flashcards=self._cards(saved.id))

    def _claim(self, user_id: str, name: str) -> Tuple[SavedSet, bool]:
        """Return the set row for (user, name), creating it if needed, and whether it already existed."""
        saved = self._find(user_id, name)
        if saved is not None:
            return saved, True
        saved = SavedSet(user_id=user_id, name=name)
        self.session.add(saved)
        try:
            self.session.flush()
        except IntegrityError:
            # a concurrent save created the same (user, name) first
            self.session.rollback()
            logger.info("flashcard_set_save_conflict", user_id=user_id, name=name)
            existing = self._find(user_id, name)
            if existing is None:
                raise
            return existing, True
        return saved, False

    def save_set(self, user_id: str, name: str, flashcards: Sequence[Flashcard]) -> SavedSetRead:
        saved, overwritten = self._claim(user_id, name)
        if overwritten:
            self._clear_cards(saved.id)
            saved.updated_at = datetime.utcnow()
            self.session.add(saved)

        for position, card in enumerate(flashcards):
            self.session.add(SavedCard(set_id=saved.id, position=position, front=card.front, back=card.back))
        self.session.commit()

        logger.info("flashcard_set_saved", user_id=user_id, name=name, cards=len(flashcards), overwritten=overwritten)
        return SavedSetRead(name=name, flashcards=list(flashcards))

    def delete_set(self, user_id: str, name: str) -> bool:
        saved = self._find(user_id, name)
        if saved is None:
            return False
        self._clear_cards(saved.id)
        self.session.delete(saved)
        self.session.commit()
        logger.info("flashcard_set_deleted", user_id=user_id, name=name)
        return True

    def count_sets(self) -> int:
        return self.session.exec(select(func.count()).select_from(SavedSet)).one()
