import logging

from .chain_utils import StepResult, run_chain
from .config import IconConfig
from .errors import FetchFailed, Unreachable
from .http_utils import FetchResult, fetch_with_retry
from .url_utils import favicon_service_url

logger = logging.getLogger(__name__)

DIRECT_STAGE = "direct fetch"
SERVICE_STAGE = "favicon service"


def _check_icon_response(result: FetchResult, stage: str) -> StepResult:
    if not result.ok:
        return StepResult.failure(f"HTTP error, status {result.status} from {result.url}", stage)
    if result.oversized:
        return StepResult.failure(f"response from {result.url} is too large", stage)
    if not result.is_image:
        ctype = result.content_type or "none"
        return StepResult.failure(f"not an image (Content-Type: {ctype}) from {result.url}", stage)
    if not result.content:
        return StepResult.failure(f"empty body from {result.url}", stage)
    return StepResult.success(result, stage)


def _fetch_step(url: str, stage: str, timeout: float, attempts: int, config: IconConfig):
    def step() -> StepResult:
        logger.info("[%s] downloading %s", stage, url)
        try:
            result = fetch_with_retry(
                url,
                timeout=timeout,
                attempts=attempts,
                backoff=config.retry_backoff,
                stage=stage,
                max_bytes=config.max_icon_bytes,
            )
        except Unreachable as exc:
            return StepResult.failure(f"{exc.url} unreachable after {attempts} attempt(s): {exc.reason}", stage)
        return _check_icon_response(result, stage)

    return step


def fetch_icon_bytes(icon_url: str, config: IconConfig | None = None) -> FetchResult:
    """Download the icon directly, then through the favicon-by-domain service.

    Raises FetchFailed listing every stage's failure when neither path yields
    an image.
    """
    config = config or IconConfig()
    strategies = [
        (DIRECT_STAGE, _fetch_step(icon_url, DIRECT_STAGE, config.direct_timeout, config.direct_attempts, config)),
        (
            SERVICE_STAGE,
            _fetch_step(
                favicon_service_url(icon_url, config),
                SERVICE_STAGE,
                config.service_timeout,
                config.service_attempts,
                config,
            ),
        ),
    ]
    outcome = run_chain(strategies)
    if outcome.ok:
        return outcome.result.value
    logger.warning("All icon fetch strategies failed for %s: %s", icon_url, outcome.messages)
    raise FetchFailed(outcome.messages)
