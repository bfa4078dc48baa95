"""
Bulk provisioning schemas.

Wire format uses camelCase keys (fullName, profileData, createdBy, userId,
emailsSent); profileData itself keeps snake_case keys matching profile columns.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileData(BaseModel):
    """Free-form profile attributes carried from an import row. All optional."""
    full_name: Optional[str] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    race: Optional[str] = None
    religion: Optional[str] = None
    date_of_birth: Optional[str] = None
    born_place: Optional[str] = None
    passport_number: Optional[str] = None
    arc_number: Optional[str] = None
    identity_card_number: Optional[str] = None
    telephone_malaysia: Optional[str] = None
    telephone_korea: Optional[str] = None
    address_malaysia: Optional[str] = None
    address_korea: Optional[str] = None
    studying_place: Optional[str] = None
    study_course: Optional[str] = None
    study_level: Optional[str] = None
    study_start_date: Optional[str] = None
    study_end_date: Optional[str] = None
    study_year: Optional[str] = None
    ppmk_batch: Optional[str] = None
    sponsorship: Optional[str] = None
    sponsorship_address: Optional[str] = None
    sponsorship_phone_number: Optional[str] = None
    blood_type: Optional[str] = None
    allergy: Optional[str] = None
    medical_condition: Optional[str] = None
    next_of_kin: Optional[str] = None
    next_of_kin_relationship: Optional[str] = None
    next_of_kin_contact_number: Optional[str] = None


class AccountRequest(CamelModel):
    """
    One row's intent to create an account.

    email and role are validated by the provisioner, not here, so a bad row
    fails on its own instead of rejecting the whole batch.
    """
    email: str = ""
    password: Optional[str] = Field(None, description="Generated server-side when omitted")
    full_name: Optional[str] = None
    role: Optional[str] = None
    profile_data: ProfileData = Field(default_factory=ProfileData)

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, value):
        if value is None:
            return ""
        return str(value).strip()


class BulkCreateUsersRequest(CamelModel):
    """Batch entry payload: {users, createdBy}."""
    users: List[AccountRequest]
    created_by: Optional[str] = None


class RowOutcome(CamelModel):
    """Result for one input row, in input order."""
    email: str
    success: bool
    user_id: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    email_sent: Optional[bool] = None


class BatchSummary(CamelModel):
    total: int
    success: int
    failed: int
    emails_sent: int


class BulkCreateUsersResponse(CamelModel):
    results: List[RowOutcome]
    summary: BatchSummary


class CredentialExportRequest(CamelModel):
    """Outcomes to export; failed ones are skipped."""
    results: List[RowOutcome]
