"""Guard chain deciding whether a project item event is worth relaying.

Each guard is a pure function of a :class:`GuardContext` returning a
:class:`FilterDecision`. Guards that only read the webhook run before any
network call; guards that need GitHub data run after enrichment.
"""

from __future__ import annotations

from typing import Callable

from fieldrelay.config import RouteConfig
from fieldrelay.webhooks.models import FilterDecision, GuardContext

Guard = Callable[[GuardContext], FilterDecision]


def run_guards(guards: list[Guard], ctx: GuardContext) -> FilterDecision:
    """Return the first rejection, or proceed if every guard passes."""
    for guard in guards:
        decision = guard(ctx)
        if not decision.proceed:
            return decision
    return FilterDecision.ok()


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def organization_guard(target: str) -> Guard:
    def guard(ctx: GuardContext) -> FilterDecision:
        if ctx.organization != target:
            return FilterDecision.ignored(
                f"Ignored: Organization {ctx.organization or 'unknown'} is not {target}"
            )
        return FilterDecision.ok()
    return guard


def action_guard(ctx: GuardContext) -> FilterDecision:
    if ctx.action != "edited":
        return FilterDecision.ignored(f"Ignored: Action {ctx.action or 'unknown'} is not an edit")
    return FilterDecision.ok()


def content_guard(ctx: GuardContext) -> FilterDecision:
    if not ctx.content_node_id:
        return FilterDecision.ignored("Ignored: Item has no issue or pull request content")
    return FilterDecision.ok()


def field_allow_guard(target_field: str) -> Guard:
    def guard(ctx: GuardContext) -> FilterDecision:
        change = ctx.change
        if change.field_name != target_field:
            return FilterDecision.ignored(
                f"Ignored: Field {change.field_name} changed to {change.new_value}"
            )
        return FilterDecision.ok()
    return guard


def field_deny_guard(ignored_fields: list[str]) -> Guard:
    denied = frozenset(ignored_fields)

    def guard(ctx: GuardContext) -> FilterDecision:
        if ctx.change.field_name in denied:
            return FilterDecision.ignored(f"Ignored: {ctx.change.field_name} field excluded.")
        return FilterDecision.ok()
    return guard


def value_guard(target_values: list[str]) -> Guard:
    accepted = frozenset(target_values)

    def guard(ctx: GuardContext) -> FilterDecision:
        change = ctx.change
        if change.new_value not in accepted:
            return FilterDecision.ignored(
                f"Ignored: Field {change.field_name} changed to {change.new_value}"
            )
        return FilterDecision.ok()
    return guard


def project_guard(target_number: int) -> Guard:
    def guard(ctx: GuardContext) -> FilterDecision:
        project = ctx.enriched.project if ctx.enriched else None
        if project is None:
            return FilterDecision.ignored("Ignored: Item is not linked to a known project")
        if project.number != target_number:
            return FilterDecision.ignored(
                f"Ignored: Project #{project.number} is not #{target_number}"
            )
        return FilterDecision.ok()
    return guard


# ---------------------------------------------------------------------------
# Chain construction
# ---------------------------------------------------------------------------

def build_pre_enrichment_guards(route: RouteConfig) -> list[Guard]:
    guards: list[Guard] = []
    if route.check_organization:
        guards.append(organization_guard(route.target_organization))
    guards.append(action_guard)
    guards.append(content_guard)
    if route.field_mode == "allow":
        guards.append(field_allow_guard(route.target_field))
    elif route.field_mode == "deny":
        guards.append(field_deny_guard(route.ignored_fields))
    if route.target_values:
        guards.append(value_guard(route.target_values))
    return guards


def build_post_enrichment_guards(route: RouteConfig) -> list[Guard]:
    guards: list[Guard] = []
    if route.check_project and route.target_project_number is not None:
        guards.append(project_guard(route.target_project_number))
    return guards
