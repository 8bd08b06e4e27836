"""Bulk onboarding of people into a Keycloak realm.

Each person is provisioned (lookup or create), gets their national id as a
temporary password, and has the configured required actions applied.
People are processed one at a time, in input order.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from app.core.keycloak import KeycloakError, UserService
from app.core.people import Person

logger = logging.getLogger(__name__)

USERNAME_FIELDS = {
    "email": "email",
    "nationalId": "national_id",
}
DEFAULT_REQUIRED_ACTIONS = frozenset({"UPDATE_PASSWORD"})


@dataclass
class RecordResult:
    username: str
    user_id: Optional[str] = None
    created: bool = False
    error: Optional[KeycloakError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ImportSummary:
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False
    results: List[RecordResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"imported": self.imported, "skipped": self.skipped}
        if self.failed:
            data["failed"] = [
                {"username": r.username, "error": type(r.error).__name__, "message": str(r.error)}
                for r in self.results
                if not r.ok
            ]
        if self.cancelled:
            data["cancelled"] = True
        return data


def username_for(person: Person, username_field: str) -> str:
    """Return the username for a person, or '' when the field is blank."""
    try:
        attr = USERNAME_FIELDS[username_field]
    except KeyError:
        raise ValueError(
            f"Unknown username field '{username_field}' (expected one of: {', '.join(USERNAME_FIELDS)})"
        )
    return (getattr(person, attr) or "").strip()


def import_person(
    service: UserService,
    person: Person,
    username: str,
    required_actions: Iterable[str],
) -> RecordResult:
    """Provision one person: user, temporary password, required actions."""
    provisioned = service.provision_user(
        username, person.name.strip(), person.last_name.strip(), person.email.strip()
    )
    service.set_temporary_password(provisioned.user_id, person.national_id.strip())
    service.set_required_actions(provisioned.user_id, required_actions)
    return RecordResult(username=username, user_id=provisioned.user_id, created=provisioned.created)


def bulk_import(
    service: UserService,
    people: Iterable[Person],
    username_field: str = "email",
    required_actions: Iterable[str] = DEFAULT_REQUIRED_ACTIONS,
    cancel_event: Optional[threading.Event] = None,
    stop_on_error: bool = True,
) -> ImportSummary:
    """Provision every person in order and return an ImportSummary.

    Args:
        service: UserService bound to the target realm
        people: People to onboard
        username_field: "email" or "nationalId"
        required_actions: Required actions set on every user (replaces existing ones)
        cancel_event: When set, the import stops before the next person
        stop_on_error: Abort the batch on the first KeycloakError (default).
            When False, failures are recorded per person and the import goes on.

    Raises:
        ValueError: Unknown username field
        KeycloakError: First failure, when stop_on_error is True
    """
    if username_field not in USERNAME_FIELDS:
        raise ValueError(
            f"Unknown username field '{username_field}' (expected one of: {', '.join(USERNAME_FIELDS)})"
        )
    actions = frozenset(required_actions)
    summary = ImportSummary()

    for person in people:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Bulk import cancelled after {summary.imported} user(s)")
            summary.cancelled = True
            break

        username = username_for(person, username_field)
        if not username:
            logger.info(f"Skipping {person.name} {person.last_name}: empty {username_field}")
            summary.skipped += 1
            continue

        try:
            result = import_person(service, person, username, actions)
        except KeycloakError as exc:
            logger.error(f"Import of '{username}' failed: {exc}")
            if stop_on_error:
                raise
            summary.failed += 1
            summary.results.append(RecordResult(username=username, error=exc))
            continue

        summary.imported += 1
        summary.results.append(result)

    logger.info(
        f"Bulk import finished: imported={summary.imported} skipped={summary.skipped} failed={summary.failed}"
    )
    return summary
