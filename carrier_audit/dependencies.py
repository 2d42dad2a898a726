# dependencies.py
# Service objects are built once per application and handed to routes through
# FastAPI dependencies, so tests can swap any of them via dependency_overrides.

from dataclasses import dataclass

from fastapi import Request

from carrier_audit.services.cache import CacheInvalidator, TTLCache
from carrier_audit.services.cases import CaseStore, build_case_store
from carrier_audit.services.clipboard import ClipboardManager, InMemoryClipboardStore
from carrier_audit.services.notifications import build_notifier
from carrier_audit.services.workflow import (
    CaseAutomation,
    WorkflowRegistry,
    initialize_default_workflows,
)


@dataclass
class Services:
    case_store: CaseStore
    registry: WorkflowRegistry
    automation: CaseAutomation
    cache: TTLCache
    invalidator: CacheInvalidator
    clipboard: ClipboardManager


def build_services(case_store: CaseStore | None = None, notifier=None) -> Services:
    case_store = case_store if case_store is not None else build_case_store()
    automation = CaseAutomation(notifier=notifier or build_notifier(), case_store=case_store)
    registry = initialize_default_workflows(WorkflowRegistry(), automation)
    cache = TTLCache()
    return Services(
        case_store=case_store,
        registry=registry,
        automation=automation,
        cache=cache,
        invalidator=CacheInvalidator(cache),
        clipboard=ClipboardManager(InMemoryClipboardStore()),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
