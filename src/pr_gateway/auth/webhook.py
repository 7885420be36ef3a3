"""FastAPI dependency: verify_webhook_secret.

Guards the manual cycle trigger. The caller sends the shared secret in the
X-Webhook-Secret header; an unset WEBHOOK_SECRET disables the endpoint.

Usage:
    @router.post("/run", dependencies=[Depends(verify_webhook_secret)])
"""

import hmac
import logging
from typing import Annotated

from fastapi import Header

from config.settings import settings
from src.pr_common.errors import UnauthorizedTriggerError

logger = logging.getLogger(__name__)


async def verify_webhook_secret(
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> None:
    expected = settings.WEBHOOK_SECRET
    if not expected:
        raise UnauthorizedTriggerError("Manual trigger is disabled (WEBHOOK_SECRET not set)")
    if x_webhook_secret is None or not hmac.compare_digest(
        x_webhook_secret.encode(), expected.encode()
    ):
        logger.warning("Rejected price-reduction trigger: bad webhook secret")
        raise UnauthorizedTriggerError()
