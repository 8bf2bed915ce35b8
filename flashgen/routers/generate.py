from typing import List

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
import structlog

from flashgen import config
from flashgen.errors import DuplicateRequest, GenerationError, InvalidRequest, RateLimitExceeded
from flashgen.middleware.dedupe import DuplicateSuppressor, get_duplicate_suppressor
from flashgen.middleware.rate_limit import SlidingWindowRateLimiter, get_client_identifier, get_rate_limiter
from flashgen.schemas import Flashcard
from flashgen.services.llm import FlashcardGenerator, get_generator
from flashgen.services.monitoring import AI_GENERATION_REQUESTS, REJECTED_REQUESTS

logger = structlog.get_logger()

router = APIRouter(tags=["generate"])


def _read_text(raw: bytes) -> str:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidRequest("Request body must be UTF-8 text.")
    if not text.strip():
        raise InvalidRequest()
    if len(text) > config.MAX_INPUT_CHARS:
        raise InvalidRequest(
            f"Text is too long. Please submit at most {config.MAX_INPUT_CHARS} characters.",
            status_code=413,
        )
    return text


def _sweep(limiter: SlidingWindowRateLimiter, suppressor: DuplicateSuppressor) -> None:
    if limiter.tracked_clients() > config.SWEEP_THRESHOLD:
        logger.info("rate_limit_log_pruned", dropped=limiter.prune())
    if suppressor.tracked_keys() > config.SWEEP_THRESHOLD:
        logger.info("duplicate_log_pruned", dropped=suppressor.prune())


def _reject_throttled(client_id: str) -> None:
    REJECTED_REQUESTS.labels(reason="rate_limit").inc()
    logger.warning("rate_limit_rejected", client_id=client_id)
    raise RateLimitExceeded()


@router.post("/generate", response_model=List[Flashcard])
async def generate_flashcards(
    request: Request,
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
    suppressor: DuplicateSuppressor = Depends(get_duplicate_suppressor),
    generator: FlashcardGenerator = Depends(get_generator),
):
    client_id = get_client_identifier(request)

    # throttled clients get 429 whatever they send; invalid bodies use no quota
    if limiter.is_throttled(client_id):
        _reject_throttled(client_id)
    text = _read_text(await request.body())
    if not limiter.admit(client_id):
        _reject_throttled(client_id)

    if suppressor.is_duplicate(client_id, text):
        REJECTED_REQUESTS.labels(reason="duplicate").inc()
        logger.warning("duplicate_request_rejected", client_id=client_id)
        raise DuplicateRequest()

    _sweep(limiter, suppressor)

    try:
        cards = await run_in_threadpool(generator.generate, text)
    except Exception as e:
        AI_GENERATION_REQUESTS.labels(status="error").inc()
        logger.error("flashcard_generation_failed", client_id=client_id, error=str(e), exc_info=True)
        if isinstance(e, GenerationError):
            raise
        raise GenerationError(f"Unexpected generation failure: {e}") from e

    AI_GENERATION_REQUESTS.labels(status="success").inc()
    logger.info("flashcards_generated", client_id=client_id, count=len(cards))
    return cards
