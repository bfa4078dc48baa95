from sqlalchemy import Boolean, Column, DateTime, String, Text, func

from app.models.base import Base

# Personal, contact, academic, sponsorship and medical fields copied verbatim
# from an import row. Dates are kept as ISO strings, as entered.
PROFILE_DATA_FIELDS = (
    "full_name",
    "gender",
    "marital_status",
    "race",
    "religion",
    "date_of_birth",
    "born_place",
    "passport_number",
    "arc_number",
    "identity_card_number",
    "telephone_malaysia",
    "telephone_korea",
    "address_malaysia",
    "address_korea",
    "studying_place",
    "study_course",
    "study_level",
    "study_start_date",
    "study_end_date",
    "study_year",
    "ppmk_batch",
    "sponsorship",
    "sponsorship_address",
    "sponsorship_phone_number",
    "blood_type",
    "allergy",
    "medical_condition",
    "next_of_kin",
    "next_of_kin_relationship",
    "next_of_kin_contact_number",
)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    # Identity id from the auth provider; one profile per identity
    user_id = Column(String, unique=True, index=True, nullable=False)

    username = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String, nullable=True)
    must_change_password = Column(Boolean, nullable=False, default=False)

    # Identity
    full_name = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    marital_status = Column(String, nullable=True)
    race = Column(String, nullable=True)
    religion = Column(String, nullable=True)
    date_of_birth = Column(String, nullable=True)
    born_place = Column(String, nullable=True)
    passport_number = Column(String, nullable=True)
    arc_number = Column(String, nullable=True)
    identity_card_number = Column(String, nullable=True)

    # Contact
    telephone_malaysia = Column(String, nullable=True)
    telephone_korea = Column(String, nullable=True)
    address_malaysia = Column(Text, nullable=True)
    address_korea = Column(Text, nullable=True)

    # Academic
    studying_place = Column(String, nullable=True)
    study_course = Column(String, nullable=True)
    study_level = Column(String, nullable=True)
    study_start_date = Column(String, nullable=True)
    study_end_date = Column(String, nullable=True)
    study_year = Column(String, nullable=True)
    ppmk_batch = Column(String, nullable=True)

    # Sponsorship
    sponsorship = Column(String, nullable=True)
    sponsorship_address = Column(Text, nullable=True)
    sponsorship_phone_number = Column(String, nullable=True)

    # Medical / emergency
    blood_type = Column(String, nullable=True)
    allergy = Column(String, nullable=True)
    medical_condition = Column(String, nullable=True)
    next_of_kin = Column(String, nullable=True)
    next_of_kin_relationship = Column(String, nullable=True)
    next_of_kin_contact_number = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
