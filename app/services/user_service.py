"""Actor and patient directory lookups."""

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.patients import patients
from app.models.users import users


class UserService:
    """Lookups of the people acting on appointments."""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: str) -> dict | None:
        """Get an actor (id, email, full_name, role, is_active) by ID."""
        query = select(users).where(users.c.id == user_id)
        result = await db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    @staticmethod
    async def create_user(
        db: AsyncSession,
        user_id: str,
        email: str,
        role: str,
        full_name: str | None = None,
    ) -> dict:
        """Register an actor; used by seeding scripts and tests."""
        await db.execute(
            insert(users).values(id=user_id, email=email, role=role, full_name=full_name, is_active=True)
        )
        await db.commit()
        return {"id": user_id, "email": email, "role": role, "full_name": full_name, "is_active": True}


class PatientService:
    """Patient contact lookups used for notifications."""

    @staticmethod
    async def get_patient_by_id(db: AsyncSession, patient_id: str) -> dict | None:
        query = select(patients).where(patients.c.id == patient_id)
        result = await db.execute(query)
        patient = result.mappings().first()
        return dict(patient) if patient else None

    @staticmethod
    async def create_patient(
        db: AsyncSession,
        patient_id: str,
        email: str,
        full_name: str,
        phone: str | None = None,
    ) -> dict:
        await db.execute(
            insert(patients).values(id=patient_id, email=email, full_name=full_name, phone=phone)
        )
        await db.commit()
        return {"id": patient_id, "email": email, "full_name": full_name, "phone": phone}
