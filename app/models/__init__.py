"""SQLAlchemy models for the PPMKFriends provisioning backend."""

from app.models.invited_credential import InvitedCredential  # noqa: F401
from app.models.profile import PROFILE_DATA_FIELDS, Profile  # noqa: F401
from app.models.provisioning_repair import ProvisioningRepair  # noqa: F401
from app.models.rbac import UserRole  # noqa: F401
