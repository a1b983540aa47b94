from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

# --------------------------
# Enumerations
# --------------------------
Role = Literal["donor", "ngo", "admin"]
SignupRole = Literal["donor", "ngo"]
DonationCategory = Literal[
    "food", "clothes", "books", "toys", "medicine", "furniture", "electronics", "other"
]
DonationStatus = Literal["available", "claimed", "delivered", "cancelled"]
RequestStatus = Literal["open", "fulfilled", "closed"]
Urgency = Literal["low", "medium", "high"]
NgoVerificationStatus = Literal["pending", "verified", "rejected"]
VerificationRequestStatus = Literal["pending", "approved", "rejected"]
ReportStatus = Literal["pending", "investigating", "resolved", "closed"]
Priority = Literal["low", "medium", "high"]
NotificationType = Literal[
    "donationCreated",
    "donationClaimed",
    "requestCreated",
    "requestFulfilled",
    "messageReceived",
    "verificationRequest",
    "verificationUpdated",
]

# --------------------------
# Shared Submodels
# --------------------------
class LatLng(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

class SocialLinks(BaseModel):
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None
    linkedin: Optional[str] = None

class PatchIn(BaseModel):
    """Partial update. Omitted fields keep their stored value; only
    ``nullable`` fields may be cleared with an explicit null."""
    nullable: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_nulls(self):
        cleared = sorted(k for k in self.model_fields_set if getattr(self, k) is None and k not in self.nullable)
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self

# --------------------------
# Users & Auth
# --------------------------
class UserProfile(BaseModel):
    id: str
    display_name: str
    email: EmailStr
    role: Role
    phone_number: Optional[str] = None
    address: Optional[str] = None
    location: Optional[LatLng] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    is_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # NGO only
    registration_number: Optional[str] = None
    registration_document: Optional[str] = None
    tax_exemption_document: Optional[str] = None
    website: Optional[str] = None
    focus_areas: List[str] = []
    social_links: Optional[SocialLinks] = None
    verification_status: Optional[NgoVerificationStatus] = None
    verification_data: Optional[Dict[str, Any]] = None
    verification_submitted_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

class PublicProfile(BaseModel):
    id: str
    display_name: str
    role: Role
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    website: Optional[str] = None
    focus_areas: List[str] = []
    is_verified: bool = False

class ProfileUpdate(PatchIn):
    nullable: ClassVar[FrozenSet[str]] = frozenset({
        "phone_number", "address", "location", "bio", "photo_url", "website", "social_links",
    })

    display_name: Optional[str] = Field(default=None, min_length=1)
    phone_number: Optional[str] = None
    address: Optional[str] = None
    location: Optional[LatLng] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    website: Optional[str] = None
    focus_areas: Optional[List[str]] = None
    social_links: Optional[SocialLinks] = None

class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    display_name: str = Field(min_length=1)
    role: SignupRole = "donor"

class LoginIn(BaseModel):
    email: EmailStr
    password: str

class GoogleLoginIn(BaseModel):
    id_token: str
    role: SignupRole = "donor"

class PasswordResetIn(BaseModel):
    email: EmailStr

class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(min_length=6)

class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile

# --------------------------
# Donations
# --------------------------
class DonationIn(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    category: DonationCategory
    quantity: int = Field(gt=0)
    address: str = Field(min_length=1)
    location: Optional[LatLng] = None
    pickup_instructions: Optional[str] = None
    requires_pickup: bool = True
    images: List[str] = []

class DonationUpdate(PatchIn):
    nullable: ClassVar[FrozenSet[str]] = frozenset({"location", "pickup_instructions"})

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[DonationCategory] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    address: Optional[str] = Field(default=None, min_length=1)
    location: Optional[LatLng] = None
    pickup_instructions: Optional[str] = None
    requires_pickup: Optional[bool] = None
    images: Optional[List[str]] = None

class Donation(BaseModel):
    id: str
    title: str
    description: str = ""
    category: DonationCategory
    quantity: int
    address: str
    location: Optional[LatLng] = None
    pickup_instructions: Optional[str] = None
    requires_pickup: bool = True
    images: List[str] = []
    donor_id: str
    donor_name: str
    status: DonationStatus
    claimed_by: Optional[str] = None
    claimed_by_name: Optional[str] = None
    claimed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    # only set on nearby queries
    distance: Optional[float] = None

# --------------------------
# Requests
# --------------------------
class RequestIn(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    category: DonationCategory
    quantity: int = Field(gt=0)
    beneficiary_count: Optional[int] = Field(default=None, ge=0)
    urgency: Urgency = "medium"
    deadline: Optional[datetime] = None
    address: Optional[str] = None
    location: Optional[LatLng] = None

class RequestUpdate(PatchIn):
    nullable: ClassVar[FrozenSet[str]] = frozenset({"beneficiary_count", "deadline", "address", "location"})

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[DonationCategory] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    beneficiary_count: Optional[int] = Field(default=None, ge=0)
    urgency: Optional[Urgency] = None
    deadline: Optional[datetime] = None
    address: Optional[str] = None
    location: Optional[LatLng] = None

class DonationRequest(BaseModel):
    id: str
    title: str
    description: str = ""
    category: DonationCategory
    quantity: int
    beneficiary_count: Optional[int] = None
    urgency: Urgency
    deadline: Optional[datetime] = None
    address: Optional[str] = None
    location: Optional[LatLng] = None
    ngo_id: str
    ngo_name: str
    status: RequestStatus
    fulfilled_by_id: Optional[str] = None
    fulfilled_by_name: Optional[str] = None
    fulfilled_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    distance: Optional[float] = None

class RequestStats(BaseModel):
    open: int
    fulfilled: int

# --------------------------
# Notifications
# --------------------------
class Notification(BaseModel):
    id: str
    user_id: Optional[str] = None
    target_user_role: Optional[Role] = None
    type: NotificationType
    title: str
    message: str
    is_read: bool = False
    created_at: datetime
    metadata: Dict[str, Any] = {}

class UnreadCount(BaseModel):
    unread: int

# --------------------------
# Verification
# --------------------------
class VerificationIn(BaseModel):
    registration_number: str = Field(min_length=1)
    registration_document: str = Field(min_length=1)
    tax_exemption_document: Optional[str] = None
    website: Optional[str] = None
    focus_areas: Optional[List[str]] = None
    social_links: Optional[SocialLinks] = None

class VerificationRequest(BaseModel):
    id: str
    uid: str
    status: VerificationRequestStatus
    registration_number: str
    registration_document: str
    tax_exemption_document: Optional[str] = None
    website: Optional[str] = None
    focus_areas: Optional[List[str]] = None
    social_links: Optional[SocialLinks] = None
    submitted_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    # filled in for the admin review list
    ngo_name: Optional[str] = None
    ngo_email: Optional[str] = None

class RejectIn(BaseModel):
    reason: str = Field(min_length=1)

class VerificationStatusOut(BaseModel):
    verification_status: Optional[NgoVerificationStatus] = None
    is_verified: bool
    rejection_reason: Optional[str] = None

# --------------------------
# Reports
# --------------------------
class ReportIn(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    reference_id: str
    reference_type: Literal["donation", "request", "user"]
    priority: Priority = "medium"

class ReportUpdate(PatchIn):
    nullable: ClassVar[FrozenSet[str]] = frozenset({"assigned_to", "resolution"})

    status: Optional[ReportStatus] = None
    assigned_to: Optional[str] = None
    resolution: Optional[str] = None

class Report(BaseModel):
    id: str
    title: str
    description: str
    reported_by: str
    reporter_role: Role
    reference_id: str
    reference_type: str
    status: ReportStatus
    priority: Priority
    assigned_to: Optional[str] = None
    resolution: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

# --------------------------
# Contact
# --------------------------
class ContactIn(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    subject: Optional[str] = None
    message: str = Field(min_length=1)
    user_type: Literal["general", "donor", "ngo"] = "general"

class ContactMessage(BaseModel):
    id: str
    name: str
    email: EmailStr
    subject: Optional[str] = None
    message: str
    user_type: str
    status: str
    created_at: datetime

# --------------------------
# Dashboards
# --------------------------
class DonorDashboard(BaseModel):
    role: Literal["donor"] = "donor"
    total_donations: int
    by_status: Dict[str, int]
    recent: List[Donation]

class NgoDashboard(BaseModel):
    role: Literal["ngo"] = "ngo"
    claimed_count: int
    delivered_count: int
    requests: RequestStats
    verification_status: Optional[NgoVerificationStatus] = None

class TopDonor(BaseModel):
    donor_id: str
    name: str
    count: int

class AdminDashboard(BaseModel):
    role: Literal["admin"] = "admin"
    users_by_role: Dict[str, int]
    total_donations: int
    donations_by_status: Dict[str, int]
    donations_by_category: Dict[str, int]
    total_requests: int
    top_donors: List[TopDonor]
    pending_verifications: int
    open_reports: int
