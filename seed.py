import asyncio
from sqlalchemy import select
from app.core.config import settings
from app.core.db import AsyncSessionLocal
from app.core.security import hash_password
from app.core.permissions import ADMIN_ROLE, CONFIGURABLE_ROLES
from app.models.auth import User
from app.services.permissions import ensure_role_permission_config, normalize_permission_table


async def seed_database():
    async with AsyncSessionLocal() as db:
        print("🌱 Starting database seed...")

        print("\n🔐 Creating admin user...")
        result = await db.execute(select(User).where(User.phone == settings.ADMIN_PHONE))
        admin = result.scalar_one_or_none()

        if not admin:
            admin = User(
                phone=settings.ADMIN_PHONE,
                email=settings.ADMIN_EMAIL,
                full_name="Union Administrator",
                hashed_password=hash_password(settings.ADMIN_PASSWORD),
                role=ADMIN_ROLE,
            )
            db.add(admin)
            await db.commit()
            await db.refresh(admin)
            print("  ✅ Created admin user")
            print(f"  📱 Phone: {settings.ADMIN_PHONE}")
            print("  ⚠️  PLEASE CHANGE THE PASSWORD IMMEDIATELY!")
        else:
            print("  ⏭️  Admin already exists")

        print("\n👥 Checking role permissions...")
        row = await ensure_role_permission_config(db, admin)
        table, _ = normalize_permission_table(row.value)
        for role in CONFIGURABLE_ROLES:
            granted = sum(table.get(role, {}).values())
            print(f"  • {role}: {granted} permission(s) granted")

        print("\n✨ Database seeding completed!\n")


if __name__ == "__main__":
    asyncio.run(seed_database())
