"""
Action Workflow
===============

Orchestrates the user-facing interaction shapes around the Transition
Engine:

* **confirm-only** (delete, cancel reservation): a summary of the target
  car, then the transition with no further input;
* **collect-then-confirm** (reserve, sell): a customer form validated
  locally before the transition is issued.  Selling carries an
  irreversibility warning that must be acknowledged;
* **car forms** (create, edit): edit is refused for any car that is not
  available.

After every successful transition the active inventory tab is queried
again, exactly once.  Failures are recorded on the dialog/form before the
error is re-raised, and nothing is changed locally ahead of the service.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from dealership.domain.entities import Car, CarDraft, Customer
from dealership.domain.enums import CarAction, CarStatus
from dealership.domain.exceptions import (
    ConfirmationRequired,
    InventoryError,
    NotFound,
    StateConflict,
    TransportError,
    ValidationError,
)
from dealership.domain.transitions import (
    TransitionEngine,
    TransitionResult,
    ensure_transition,
)
from dealership.domain.validation import validate_customer, validate_vehicle

logger = logging.getLogger(__name__)

IRREVERSIBLE_WARNING = "This action is irreversible."


class WorkflowKind(str, enum.Enum):
    CONFIRM_ONLY = "confirm-only"
    COLLECT_THEN_CONFIRM = "collect-then-confirm"


WORKFLOW_KINDS: dict[CarAction, WorkflowKind] = {
    CarAction.DELETE: WorkflowKind.CONFIRM_ONLY,
    CarAction.CANCEL_RESERVATION: WorkflowKind.CONFIRM_ONLY,
    CarAction.RESERVE: WorkflowKind.COLLECT_THEN_CONFIRM,
    CarAction.SELL: WorkflowKind.COLLECT_THEN_CONFIRM,
}


@dataclass
class ActionDialog:
    action: CarAction
    car: Car
    kind: WorkflowKind
    title: str
    message: str
    note: str = ""
    warning: Optional[str] = None
    is_open: bool = True
    error: Optional[str] = None
    field_errors: dict[str, str] = field(default_factory=dict)

    @property
    def requires_customer(self) -> bool:
        return self.kind is WorkflowKind.COLLECT_THEN_CONFIRM


@dataclass
class CarForm:
    car: Optional[Car] = None  # None when adding a new car
    draft: CarDraft = field(default_factory=CarDraft)
    is_open: bool = True
    error: Optional[str] = None
    field_errors: dict[str, str] = field(default_factory=dict)

    @property
    def action(self) -> CarAction:
        return CarAction.CREATE if self.car is None else CarAction.UPDATE

    @property
    def submit_label(self) -> str:
        return "Add Car" if self.car is None else "Update Car"


def _describe(action: CarAction, car: Car) -> tuple[str, str, str]:
    """Title, summary and reversibility note for *action* on *car*."""
    if action is CarAction.DELETE:
        return (
            "Confirm Car Deletion",
            f"Are you sure you want to delete {car.title}?",
            "The car will be removed from the inventory permanently.",
        )
    if action is CarAction.CANCEL_RESERVATION:
        customer = car.customer.full_name if car.customer else "unknown customer"
        return (
            "Confirm Cancellation",
            f"Are you sure you want to cancel the reservation for "
            f"{car.title} by {customer}?",
            "The car will return to the available inventory.",
        )
    if action is CarAction.RESERVE:
        return (
            "Confirm Reservation",
            f"Are you sure you want to reserve {car.title}?",
            "The reservation can be cancelled later.",
        )
    if action is CarAction.SELL:
        return (
            "Confirm Sale",
            f"Are you sure you want to sell {car.title}?",
            "A sold car can no longer be changed.",
        )
    raise ValueError(f"{action.value} has no confirmation dialog")


class ActionWorkflow:
    def __init__(self, engine: TransitionEngine, view):
        self.engine = engine
        self.view = view

    # ── Dialogs ───────────────────────────────────────────────────────

    def open(self, car: Car, action: CarAction) -> ActionDialog:
        """Open the dialog for *action*; refused when *car* cannot take it."""
        kind = WORKFLOW_KINDS.get(action)
        if kind is None:
            raise ValueError(f"{action.value} is not a dialog action")
        ensure_transition(car.id, car.status, action)

        title, message, note = _describe(action, car)
        return ActionDialog(
            action=action,
            car=car,
            kind=kind,
            title=title,
            message=message,
            note=note,
            warning=IRREVERSIBLE_WARNING if action is CarAction.SELL else None,
        )

    async def confirm(
        self,
        dialog: ActionDialog,
        customer: Optional[Customer] = None,
        *,
        acknowledge_irreversible: bool = False,
    ) -> TransitionResult:
        if not dialog.is_open:
            raise RuntimeError("Dialog is already closed")
        dialog.error = None
        dialog.field_errors.clear()

        if dialog.requires_customer:
            try:
                validate_customer(customer)
            except ValidationError as exc:
                dialog.field_errors[exc.field] = exc.reason
                raise
        if dialog.warning and not acknowledge_irreversible:
            dialog.error = dialog.warning
            raise ConfirmationRequired(dialog.warning)

        action = dialog.action
        try:
            if action is CarAction.DELETE:
                result = await self.engine.delete(dialog.car)
            elif action is CarAction.CANCEL_RESERVATION:
                result = await self.engine.cancel_reservation(dialog.car)
            elif action is CarAction.RESERVE:
                result = await self.engine.reserve(dialog.car, customer)
            elif action is CarAction.SELL:
                result = await self.engine.sell(dialog.car, customer)
            else:
                raise ValueError(f"{action.value} is not a dialog action")
        except InventoryError as exc:
            await self._fail(dialog, exc)
            raise

        dialog.is_open = False
        await self._refresh()
        return result

    def cancel(self, dialog: ActionDialog) -> None:
        dialog.is_open = False

    # ── Car forms ─────────────────────────────────────────────────────

    def open_create(self) -> CarForm:
        return CarForm()

    def open_edit(self, car: Car) -> CarForm:
        """Edit form for an available car; any other status is refused."""
        if car.status != CarStatus.AVAILABLE:
            raise StateConflict(car.id, car.status, CarAction.UPDATE)
        return CarForm(car=car, draft=CarDraft.from_car(car))

    async def submit(self, form: CarForm, draft: CarDraft) -> TransitionResult:
        if not form.is_open:
            raise RuntimeError("Form is already closed")
        form.draft = draft
        form.error = None
        form.field_errors.clear()

        try:
            validate_vehicle(draft, require_picture=form.car is None)
            if form.car is None:
                result = await self.engine.create(draft)
            else:
                result = await self.engine.update(form.car, draft)
        except InventoryError as exc:
            await self._fail(form, exc)
            raise

        form.is_open = False
        await self._refresh()
        return result

    # ── Plumbing ──────────────────────────────────────────────────────

    async def _fail(self, target, exc: InventoryError) -> None:
        if isinstance(exc, ValidationError):
            target.field_errors[exc.field] = exc.reason
            return
        if isinstance(exc, TransportError):
            # Stays open so the user can retry by hand.
            target.error = "Something went wrong. Please try again."
            logger.warning("Transport failure: %s", exc)
            return

        if isinstance(exc, NotFound):
            target.error = "This car no longer exists."
        elif isinstance(exc, StateConflict):
            target.error = f"This action is no longer possible: {exc}"
        else:
            target.error = str(exc)
        target.is_open = False
        logger.info("Action rejected: %s", exc)
        try:
            await self._refresh()
        except InventoryError as refresh_exc:
            # The rejection is what the caller sees.
            logger.warning("Refresh after rejected action failed: %s", refresh_exc)

    async def _refresh(self) -> None:
        if self.view is not None:
            await self.view.refresh()
