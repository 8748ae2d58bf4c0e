"""Server-side state of the create/edit client form.

The controller owns the in-progress form values, per-field error messages and
the submission lifecycle. It is driven by intents (field changed, logo staged,
submit) and reports every state change through ``on_change`` so a live session
can push a fresh snapshot.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from pydantic import ValidationError

from client_console.core.errors import ClientServiceError
from client_console.models.client import derive_status
from client_console.schemas.client import (
    ClientFormData,
    ClientRecord,
    ClientUpdateData,
    LogoFile,
)
from client_console.schemas.realtime import ChangeEvent, ChangeEventType
from client_console.services.clients import CLIENTS_TABLE, ClientService
from client_console.services.realtime import ChangeFeed, Subscription
from client_console.utils.validation import validate_client_form

logger = logging.getLogger(__name__)

Listener = Callable[[], Awaitable[None]]

SUBMIT_ERROR_KEY = "submit"
LOGO_FIELD = "organization_logo"


class FormState(str, Enum):
    """Lifecycle of the form."""

    LOADING = "loading"
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"


class ClientFormController:
    """
    Create/edit form for one client organization.

    Without ``client_id`` the form creates a new client; with it, the form
    loads and edits that client.
    """

    def __init__(
        self,
        service: ClientService,
        change_feed: ChangeFeed,
        client_id: UUID | str | None = None,
        on_success: Optional[Listener] = None,
        on_change: Optional[Listener] = None,
    ) -> None:
        self.service = service
        self.change_feed = change_feed
        self.client_id = str(client_id) if client_id else None
        self.on_success = on_success
        self.on_change = on_change

        self.form_data = ClientFormData()
        self.errors: dict[str, str] = {}
        self.logo_url: Optional[str] = None
        self.saved_client_id: Optional[str] = None
        self.state = FormState.LOADING if self.client_id else FormState.IDLE

        self._subscription: Optional[Subscription] = None

    @property
    def is_edit_mode(self) -> bool:
        return self.client_id is not None

    @property
    def loading(self) -> bool:
        return self.state == FormState.LOADING

    @property
    def submitting(self) -> bool:
        return self.state == FormState.SUBMITTING

    async def load(self) -> None:
        """Fetch the edited client into the form. No-op in create mode."""
        if not self.is_edit_mode:
            return

        self.state = FormState.LOADING
        await self._notify()

        try:
            record = await self.service.get_client(self.client_id)
        except ClientServiceError as e:
            logger.error(f"Error loading client {self.client_id}: {e}")
            record = None

        if record is not None:
            self._apply_record(record)
        else:
            logger.warning(f"Client {self.client_id} could not be loaded, form left empty")

        self.state = FormState.IDLE
        await self._notify()

    async def handle_change(self, field: str, value: Any) -> None:
        """
        Set one form field and clear its error.

        Setting ``business_verification_status`` also moves ``status`` to the
        value the verification outcome implies, in the same update.

        Raises:
            ValueError: If the field is not a form field or the value has the wrong type
        """
        if field not in ClientFormData.model_fields or field == LOGO_FIELD:
            raise ValueError(f"Unknown form field: {field}")

        updates = {field: value}
        if field == "business_verification_status":
            status = derive_status(value)
            if status is not None:
                updates["status"] = status.value

        try:
            self.form_data = ClientFormData.model_validate({**dict(self.form_data), **updates})
        except ValidationError as e:
            raise ValueError(f"Invalid value for {field}: {e.errors()[0]['msg']}") from e
        self.errors.pop(field, None)
        await self._notify()

    async def stage_logo(self, file: LogoFile) -> None:
        """Keep a logo for upload on submit."""
        self.form_data = self.form_data.model_copy(update={LOGO_FIELD: file})
        self.errors.pop(LOGO_FIELD, None)
        await self._notify()

    async def set_field_error(self, field: str, message: str) -> None:
        self.errors[field] = message
        await self._notify()

    async def clear_error(self, field: str) -> None:
        self.errors.pop(field, None)
        await self._notify()

    async def submit(self) -> bool:
        """
        Validate and persist the form.

        New clients are created first; a staged logo is then uploaded under
        the tenant id the backend assigned and the record updated with its URL.
        Side effects that completed before a failure are not undone.

        Returns:
            True when the client was saved, False on validation or backend errors
        """
        self.state = FormState.SUBMITTING
        self.errors = {}
        await self._notify()

        errors = await validate_client_form(self.form_data)
        if errors:
            self.errors = errors
            self.state = FormState.IDLE
            await self._notify()
            return False

        try:
            if self.is_edit_mode:
                await self._save_existing()
            else:
                await self._save_new()
        except Exception as e:
            logger.error(f"Error saving client form: {e}")
            self.errors = {SUBMIT_ERROR_KEY: str(e) or "Failed to save client"}
            self.state = FormState.IDLE
            await self._notify()
            return False

        self.state = FormState.SUCCEEDED
        await self._notify()
        if self.on_success is not None:
            await self.on_success()
        return True

    async def _save_new(self) -> None:
        created = await self.service.create_client(self.form_data.to_create_data())
        self.saved_client_id = str(created.id)

        logo = self.form_data.organization_logo
        if logo is not None:
            logo_url = await self.service.upload_logo(created.tenant_id, logo)
            await self.service.update_client(
                created.id, ClientUpdateData(organization_logo_url=logo_url)
            )

    async def _save_existing(self) -> None:
        logo_url = self.logo_url

        logo = self.form_data.organization_logo
        if logo is not None:
            record = await self.service.get_client(self.client_id)
            if record is None:
                raise ClientServiceError(
                    f"Failed to upload logo: client {self.client_id} not found"
                )
            logo_url = await self.service.upload_logo(record.tenant_id, logo)

        await self.service.update_client(self.client_id, self.form_data.to_update_data(logo_url))
        self.saved_client_id = self.client_id
        await self.load()

    def start_live_updates(self) -> None:
        """Overwrite the form whenever the edited client changes elsewhere."""
        if not self.is_edit_mode or self._subscription is not None:
            return
        self._subscription = self.change_feed.subscribe(
            CLIENTS_TABLE,
            self._on_remote_update,
            event=ChangeEventType.UPDATE.value,
            row_id=self.client_id,
        )

    def stop_live_updates(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def close(self) -> None:
        self.stop_live_updates()

    async def _on_remote_update(self, change: ChangeEvent) -> None:
        if change.new is None:
            return
        # Unsaved edits are replaced by the pushed row
        self._apply_record(ClientRecord.model_validate(change.new))
        await self._notify()

    def _apply_record(self, record: ClientRecord) -> None:
        self.form_data = ClientFormData.from_record(record)
        self.logo_url = record.organization_logo_url

    async def _notify(self) -> None:
        if self.on_change is not None:
            await self.on_change()
