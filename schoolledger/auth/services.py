import logging
from typing import List
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.models import User
from schoolledger.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SchoolInfo,
    UserInfo,
)
from schoolledger.auth.security import create_access_token, hash_password, verify_password
from schoolledger.core.config import settings
from schoolledger.core.enums import InstitutionType, UserRole
from schoolledger.core.exceptions import ConflictError, ServiceError
from schoolledger.core.models import FeeHead, School, SchoolClass

logger = logging.getLogger(__name__)


DEFAULT_GRADES = (
    "Playgroup",
    "Nursery",
    "KG",
    "Grade 1",
    "Grade 2",
    "Grade 3",
    "Grade 4",
    "Grade 5",
    "Grade 6",
    "Grade 7",
    "Grade 8",
    "Grade 9",
    "Grade 10",
    "Grade 11",
    "Grade 12",
)
DEFAULT_SECTION = "A"

# Institution types that get the default grade ladder at signup
INSTITUTIONS_WITH_DEFAULT_CLASSES = (InstitutionType.SCHOOL, InstitutionType.SCHOOL_AND_COLLEGE)


def build_default_classes(school_id: UUID, institution_type: InstitutionType) -> List[SchoolClass]:
    if institution_type not in INSTITUTIONS_WITH_DEFAULT_CLASSES:
        return []
    return [
        SchoolClass(school_id=school_id, name=name, section=DEFAULT_SECTION)
        for name in DEFAULT_GRADES
    ]


def build_default_fee_head(school_id: UUID) -> FeeHead:
    return FeeHead(school_id=school_id, name=settings.default_fee_head_name, is_one_time=False)


def _access_token_for(user: User) -> str:
    return create_access_token(user_id=user.id, school_id=user.school_id, role=user.role)


def _user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        school_id=user.school_id,
        full_name=user.full_name,
        email=user.email,
        role=user.role,
    )


async def register_tenant(
    db: AsyncSession, payload: RegisterRequest
) -> RegisterResponse:
    """
    Create a school with its owner, default classes and default fee head in one transaction.
    Either every row commits or none does.
    """
    email = payload.email.lower()

    existing_user_result = await db.execute(select(User.id).where(func.lower(User.email) == email))
    if existing_user_result.scalar_one_or_none():
        raise ConflictError("This email is already in use.")

    try:
        # 1. School first; owner_user_id is back-filled once the owner exists
        school = School(
            school_name=payload.school_name.strip(),
            institution_type=payload.institution_type.value,
            address=payload.address,
            phone=payload.phone,
        )
        db.add(school)
        await db.flush()  # to populate school.id

        # 2. Owner account
        owner = User(
            school_id=school.id,
            full_name=payload.full_name.strip(),
            email=email,
            password_hash=hash_password(payload.password),
            role=UserRole.ADMIN.value,
            status="ACTIVE",
        )
        db.add(owner)
        await db.flush()

        # 3. Default classes (batch insert)
        classes = build_default_classes(school.id, payload.institution_type)
        db.add_all(classes)

        # 4. Default fee head
        fee_head = build_default_fee_head(school.id)
        db.add(fee_head)

        # 5. Back-fill the owner reference
        school.owner_user_id = owner.id

        await db.commit()
        await db.refresh(school)

    except IntegrityError as e:
        await db.rollback()
        logger.warning("Registration conflict for %s, transaction rolled back", email)
        raise ConflictError("Email already exists.") from e
    except Exception as e:
        await db.rollback()
        logger.exception("Registration failed for %s, transaction rolled back", email)
        raise ServiceError(
            "Server error during registration.", status.HTTP_500_INTERNAL_SERVER_ERROR
        ) from e

    logger.info(
        "Registered school %s (%s) with owner %s, %d default classes",
        school.id, school.institution_type, owner.id, len(classes),
    )
    return RegisterResponse(
        school=SchoolInfo(
            id=school.id,
            school_name=school.school_name,
            institution_type=school.institution_type,
            owner_user_id=school.owner_user_id,
            created_at=school.created_at,
        ),
        owner=_user_info(owner),
        default_class_count=len(classes),
        default_fee_head_id=fee_head.id,
        access_token=_access_token_for(owner),
    )


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    user_stmt = select(User).where(func.lower(User.email) == payload.email.lower())
    user_result = await db.execute(user_stmt)
    user = user_result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)
    if user.status != "ACTIVE":
        raise ServiceError("User is inactive", status.HTTP_403_FORBIDDEN)

    return LoginResponse(access_token=_access_token_for(user), user=_user_info(user))
