import os

from modulyn.core.database import Base, SessionLocal, engine
from modulyn.core.security import get_password_hash
from modulyn.models.user import User, UserRole
from modulyn.services.tenants import new_tenant


def create_master(company: str, email: str, full_name: str, password: str) -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email.lower()).first()
        if existing:
            print(f"User already exists: {email}")
            return

        tenant = new_tenant(db, company)
        user = User(
            tenant_id=tenant.id,
            email=email.lower(),
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=UserRole.master,
            is_active=True,
        )
        db.add(user)
        db.commit()
        print(f"Created tenant {tenant.slug} with master user {email}")
    finally:
        db.close()


if __name__ == "__main__":
    # Credentials come from the environment only.
    company = os.getenv("BOOTSTRAP_COMPANY", "Modulyn Demo")
    email = os.getenv("BOOTSTRAP_MASTER_EMAIL")
    password = os.getenv("BOOTSTRAP_MASTER_PASSWORD")
    if email and password:
        create_master(company, email, os.getenv("BOOTSTRAP_MASTER_NAME", "Master Admin"), password)
    else:
        print("Bootstrap skipped. Set BOOTSTRAP_MASTER_EMAIL and BOOTSTRAP_MASTER_PASSWORD to create a master user.")
