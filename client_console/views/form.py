"""View models for the create/edit client form."""

import base64
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, Field

from client_console.controllers.client_form import (
    LOGO_FIELD,
    SUBMIT_ERROR_KEY,
    ClientFormController,
)

LOGO_HINT = "PNG, JPG or JPEG. Max 5MB. Minimum 512x512 pixels."

TIME_ZONE_OPTIONS = [
    ("", "Select timezone"),
    ("America/New_York", "America/New_York (EST)"),
    ("America/Chicago", "America/Chicago (CST)"),
    ("America/Denver", "America/Denver (MST)"),
    ("America/Los_Angeles", "America/Los_Angeles (PST)"),
    ("Europe/London", "Europe/London (GMT)"),
    ("Asia/Kolkata", "Asia/Kolkata (IST)"),
    ("Asia/Dubai", "Asia/Dubai (GST)"),
    ("Asia/Singapore", "Asia/Singapore (SGT)"),
]

DRAW_FREQUENCY_OPTIONS = [
    ("", "Select frequency"),
    ("weekly", "Weekly"),
    ("monthly", "Monthly"),
    ("campaign_based", "Campaign Based"),
    ("custom", "Custom"),
]

VERIFICATION_OPTIONS = [
    ("", "Select status"),
    ("pending", "Pending"),
    ("verified", "Verified"),
    ("rejected", "Rejected"),
]

STATUS_OPTIONS = [
    ("pending_verification", "Pending Verification"),
    ("active", "Active"),
    ("inactive", "Inactive"),
]


class FieldSpec(NamedTuple):
    name: str
    label: str
    input_type: str = "text"
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[list[tuple[str, str]]] = None


FORM_SECTIONS: list[tuple[str, list[FieldSpec]]] = [
    (
        "Core Organization Details",
        [
            FieldSpec("organization_name", "Organization Name", required=True,
                      placeholder="Enter organization name"),
            FieldSpec("business_category", "Business Category", required=True,
                      placeholder="e.g., Retail, Automotive, Entertainment"),
        ],
    ),
    (
        "Authorized Tenant Admin Details",
        [
            FieldSpec("tenant_admin_full_name", "Full Name", required=True,
                      placeholder="Enter admin full name"),
            FieldSpec("tenant_admin_email", "Official Email Address", "email", required=True,
                      placeholder="admin@example.com"),
            FieldSpec("tenant_admin_mobile", "Mobile Number", "tel", required=True,
                      placeholder="+1234567890"),
            FieldSpec("tenant_admin_role", "Role / Designation",
                      placeholder="e.g., CEO, Operations Manager"),
        ],
    ),
    (
        "Branding & Display Preferences",
        [
            FieldSpec("preferred_display_name", "Preferred Display Name",
                      placeholder="Display name for posters"),
            FieldSpec("brand_color", "Brand Color", "color", placeholder="#000000"),
        ],
    ),
    (
        "Operational & Configuration Details",
        [
            FieldSpec("default_time_zone", "Default Time Zone", "select",
                      options=TIME_ZONE_OPTIONS),
            FieldSpec("country_region", "Country / Region",
                      placeholder="e.g., United States, India"),
            FieldSpec("draw_frequency", "Expected Draw Frequency", "select",
                      options=DRAW_FREQUENCY_OPTIONS),
        ],
    ),
    (
        "Compliance & Verification",
        [
            FieldSpec("business_verification_status", "Business Verification Status", "select",
                      options=VERIFICATION_OPTIONS),
            FieldSpec("status", "Client Status", "select", options=STATUS_OPTIONS),
            FieldSpec("data_usage_consent", "Consent for participant data usage", "checkbox"),
            FieldSpec("data_privacy_acknowledgment", "Data privacy acknowledgment", "checkbox"),
        ],
    ),
    (
        "Communication & Support Contacts",
        [
            FieldSpec("primary_contact_person", "Primary Contact Person",
                      placeholder="Contact person name"),
            FieldSpec("support_contact_email", "Support Contact Email", "email",
                      placeholder="support@example.com"),
            FieldSpec("escalation_contact", "Escalation Contact (Optional)", "email",
                      placeholder="escalation@example.com"),
        ],
    ),
]


class SelectOption(BaseModel):
    value: str
    label: str


class FieldView(BaseModel):
    name: str
    label: str
    input_type: str
    required: bool
    value: Any = None
    placeholder: Optional[str] = None
    options: Optional[list[SelectOption]] = None
    error: Optional[str] = None


class FormSection(BaseModel):
    title: str
    fields: list[FieldView]


class LogoPreview(BaseModel):
    """What the logo picker shows: a staged file, the stored logo, or nothing."""

    label: str = "Organization Logo"
    hint: str = LOGO_HINT
    preview_url: Optional[str] = Field(
        None, description="data: URL of a staged file, or the stored logo URL"
    )
    staged_filename: Optional[str] = None
    error: Optional[str] = None


class ClientFormView(BaseModel):
    """Snapshot of the whole client form page."""

    type: str = "client_form"
    title: str
    state: str
    loading: bool
    submitting: bool
    sections: list[FormSection]
    logo: LogoPreview
    submit_label: str
    submit_error: Optional[str] = None


def logo_preview(controller: ClientFormController) -> LogoPreview:
    staged = controller.form_data.organization_logo
    if staged is not None:
        encoded = base64.b64encode(staged.data).decode("ascii")
        preview_url = f"data:{staged.content_type};base64,{encoded}"
    else:
        preview_url = controller.logo_url

    return LogoPreview(
        preview_url=preview_url,
        staged_filename=staged.filename if staged is not None else None,
        error=controller.errors.get(LOGO_FIELD),
    )


def _field_view(field: FieldSpec, value: Any, error: Optional[str]) -> FieldView:
    return FieldView(
        name=field.name,
        label=field.label,
        input_type=field.input_type,
        required=field.required,
        value=value,
        placeholder=field.placeholder,
        options=(
            [SelectOption(value=v, label=label) for v, label in field.options]
            if field.options is not None
            else None
        ),
        error=error,
    )


def render_client_form(controller: ClientFormController) -> ClientFormView:
    """Build the form page snapshot from the controller state."""
    values = controller.form_data.model_dump(exclude={LOGO_FIELD})
    sections = [
        FormSection(
            title=title,
            fields=[
                _field_view(field, values.get(field.name), controller.errors.get(field.name))
                for field in fields
            ],
        )
        for title, fields in FORM_SECTIONS
    ]

    if controller.submitting:
        submit_label = "Saving..."
    elif controller.is_edit_mode:
        submit_label = "Update Client"
    else:
        submit_label = "Create Client"

    return ClientFormView(
        title="Edit Client" if controller.is_edit_mode else "Add New Client",
        state=controller.state.value,
        loading=controller.loading,
        submitting=controller.submitting,
        sections=sections,
        logo=logo_preview(controller),
        submit_label=submit_label,
        submit_error=controller.errors.get(SUBMIT_ERROR_KEY),
    )
