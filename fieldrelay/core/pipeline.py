"""Relay pipeline: verify → filter → normalize → enrich → notify."""

from __future__ import annotations

import json
from typing import Any

from fieldrelay.config import RouteConfig
from fieldrelay.core.errors import (
    AuthenticationFailure,
    ConfigurationError,
    FilteredOut,
    InvalidPayload,
    RelayError,
    UpstreamFailure,
    UpstreamNotFound,
)
from fieldrelay.github.client import GitHubClient
from fieldrelay.notifiers.base import Notifier
from fieldrelay.utils.logging import get_logger
from fieldrelay.webhooks.filters import (
    build_post_enrichment_guards,
    build_pre_enrichment_guards,
    run_guards,
)
from fieldrelay.webhooks.handlers import (
    extract_field_change,
    get_content_node_id,
    validate_github_signature,
)
from fieldrelay.webhooks.models import (
    EnrichedContent,
    FilterDecision,
    GuardContext,
    NotificationRequest,
    RelayResult,
)

log = get_logger(__name__)

INTERNAL_ERROR = "Internal Server Error."


class RelayPipeline:
    """Handles one route's deliveries end to end. Holds no per-request state."""

    def __init__(
        self,
        route: RouteConfig,
        secret: str,
        github: GitHubClient,
        notifier: Notifier,
    ) -> None:
        self.route = route
        self._secret = secret
        self._github = github
        self._notifier = notifier
        self._pre_guards = build_pre_enrichment_guards(route)
        self._post_guards = build_post_enrichment_guards(route)

    async def handle(self, body: bytes, signature: str) -> RelayResult:
        """Run one delivery through the pipeline. Every failure becomes a RelayResult."""
        try:
            message = await self._run(body, signature)
        except FilteredOut as e:
            log.info("webhook_ignored", route=self.route.name, reason=e.message)
            return RelayResult(status=e.status, message=e.message)
        except UpstreamFailure as e:
            log.error("webhook_upstream_failure", route=self.route.name, error=e.message)
            return RelayResult(status=e.status, message=INTERNAL_ERROR)
        except RelayError as e:
            log.warning("webhook_rejected", route=self.route.name, status=e.status, reason=e.message)
            return RelayResult(status=e.status, message=e.message)
        except Exception:
            log.exception("webhook_internal_error", route=self.route.name)
            return RelayResult(status=500, message=INTERNAL_ERROR)

        return RelayResult(status=200, message=message)

    async def _run(self, body: bytes, signature: str) -> str:
        self._verify(body, signature)
        payload = _parse(body)
        log.debug("webhook_payload", route=self.route.name, payload=payload)

        ctx = GuardContext(
            payload=payload,
            content_node_id=get_content_node_id(payload),
            change=extract_field_change(payload, cleared_value=self.route.cleared_value),
        )
        self._check(run_guards(self._pre_guards, ctx))

        if self.route.needs_enrichment:
            ctx.enriched = await self._enrich(ctx)
            self._check(run_guards(self._post_guards, ctx))

        return await self._notifier.notify(
            NotificationRequest(
                route=self.route.name,
                change=ctx.change,
                content_node_id=ctx.content_node_id or "",
                sender=ctx.sender,
                enriched=ctx.enriched,
            )
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _verify(self, body: bytes, signature: str) -> None:
        if not self._secret:
            raise ConfigurationError("Webhook secret is not configured.")
        if not validate_github_signature(body, signature, self._secret):
            raise AuthenticationFailure("Signature mismatch.")

    @staticmethod
    def _check(decision: FilterDecision) -> None:
        if not decision.proceed:
            raise FilteredOut(decision.reason)

    async def _enrich(self, ctx: GuardContext) -> EnrichedContent:
        wants_project = self.route.check_project or self.route.include_queue_counts
        project_id = ctx.project_node_id if wants_project else None
        enriched = await self._github.fetch_content(
            ctx.content_node_id or "",
            project_id,
            with_counts=self.route.include_queue_counts,
            member_review_status=self.route.member_review_status,
            tf_review_status=self.route.tf_review_status,
        )
        if enriched is None:
            raise UpstreamNotFound("Content not found on GitHub.")
        return enriched


def _parse(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise InvalidPayload("Invalid JSON payload.") from e
    if not isinstance(payload, dict):
        raise InvalidPayload("Invalid JSON payload.")
    return payload
