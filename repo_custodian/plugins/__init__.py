"""Plugin handlers and their event subscriptions.

``REGISTRY`` is the complete, static list of subscriptions. A plugin may
subscribe several handlers; :func:`registrations_for` filters the list down
to the enabled plugins.
"""

from collections.abc import Iterable

import structlog

from repo_custodian.config.settings import CustodianSettings
from repo_custodian.engine.dispatcher import EventDispatcher, Registration
from repo_custodian.exceptions import ConfigurationError
from repo_custodian.plugins import (
    auto_assign,
    auto_closer,
    check_unit_test,
    commit_message,
    duplicate_comments,
    issue_archiver,
    issue_pr_link,
    needs_info,
    pr_ready_to_merge,
    recurring_issues,
    release_monitor,
    triage,
    wip,
)
from repo_custodian.providers.factory import ClientFactory

log = structlog.get_logger(__name__)

PULL_REQUEST_CHANGED = (
    "pull_request.opened",
    "pull_request.reopened",
    "pull_request.synchronize",
    "pull_request.edited",
)

REGISTRY: tuple[Registration, ...] = (
    Registration(
        "triage",
        ("issues.opened", "issues.reopened", "pull_request.opened", "pull_request.reopened"),
        triage.label_untriaged,
    ),
    Registration("needs_info", ("issues.labeled",), needs_info.request_info),
    Registration("auto_assign", ("issues.opened",), auto_assign.assign_volunteer),
    Registration("commit_message", PULL_REQUEST_CHANGED, commit_message.check_commit_message),
    Registration(
        "check_unit_test",
        ("pull_request.opened", "pull_request.reopened", "pull_request.synchronize"),
        check_unit_test.check_for_tests,
    ),
    Registration("duplicate_comments", ("issue_comment.created",), duplicate_comments.prune_duplicates),
    Registration(
        "wip",
        PULL_REQUEST_CHANGED + ("pull_request.labeled", "pull_request.unlabeled"),
        wip.update_wip_status,
    ),
    Registration("pr_ready_to_merge", ("status",), pr_ready_to_merge.on_status),
    Registration("pr_ready_to_merge", ("pull_request_review",), pr_ready_to_merge.on_review),
    Registration("recurring_issues", ("issues.closed",), recurring_issues.recur_release),
    Registration("recurring_issues", ("issues.closed",), recurring_issues.recur_tsc_meeting),
    Registration("release_monitor", ("issues.labeled",), release_monitor.on_issue_labeled),
    Registration("release_monitor", ("issues.closed",), release_monitor.on_issue_closed),
    Registration("release_monitor", PULL_REQUEST_CHANGED, release_monitor.on_pull_request),
    Registration("release_monitor", ("release.published",), release_monitor.on_release_published),
    Registration("auto_closer", ("schedule.repository",), auto_closer.close_stale_issues),
    Registration("issue_archiver", ("schedule.repository",), issue_archiver.archive_old_issues),
    Registration("issue_pr_link", ("pull_request.opened", "pull_request.edited"), issue_pr_link.link_issues),
)


def plugin_names() -> list[str]:
    return list(dict.fromkeys(registration.plugin for registration in REGISTRY))


def registrations_for(enabled: Iterable[str]) -> list[Registration]:
    """Registrations of the ``enabled`` plugins, in registry order.

    Raises:
        ConfigurationError: If a name does not match any plugin
    """
    enabled = set(enabled)
    unknown = enabled - set(plugin_names())
    if unknown:
        raise ConfigurationError(f"Unknown plugins: {', '.join(sorted(unknown))}")
    return [registration for registration in REGISTRY if registration.plugin in enabled]


def build_dispatcher(settings: CustodianSettings, clients: ClientFactory) -> EventDispatcher:
    """Dispatcher wired with the plugins enabled in ``settings``."""
    registrations = registrations_for(settings.plugins.enabled)
    log.info("plugins_loaded", plugins=sorted({registration.plugin for registration in registrations}))
    return EventDispatcher(settings, clients, registrations)
