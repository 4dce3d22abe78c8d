from daywork.core.security import get_password_hash
from daywork.db.session import SessionLocal
from daywork.storage import SqlStorage

DEMO_USERS = [
    {
        "username": "employer",
        "password": "employer123",
        "full_name": "Demo Employer",
        "phone": "9000000001",
        "email": "employer@example.com",
        "role": "employer",
        "location": "Pune",
    },
    {
        "username": "worker",
        "password": "worker123",
        "full_name": "Demo Worker",
        "phone": "9000000002",
        "email": "worker@example.com",
        "role": "worker",
        "location": "Pune",
        "primary_skill": "Carpentry",
    },
]

def create_initial_data():
    storage = SqlStorage(SessionLocal)
    print("Creating tables...")
    storage.create_schema()

    for demo in DEMO_USERS:
        existing = storage.get_user_by_username(demo["username"])
        if existing:
            print(f"User '{demo['username']}' already exists.")
            continue

        print(f"Creating {demo['role']} user '{demo['username']}'...")
        user = storage.create_user(
            username=demo["username"],
            hashed_password=get_password_hash(demo["password"]),
            full_name=demo["full_name"],
            phone=demo["phone"],
            email=demo["email"],
            role=demo["role"],
            location=demo["location"],
        )
        if demo.get("primary_skill"):
            storage.create_worker_profile(user_id=user.id, primary_skill=demo["primary_skill"])
        print(f"User '{demo['username']}' created.")

    employer = storage.get_user_by_username("employer")
    if not storage.get_jobs_by_employer(employer.id):
        job = storage.create_job(
            employer_id=employer.id,
            title="Carpenter needed for shop fit-out",
            description="Two days of shelving and counter work.",
            location="Pune",
            category="Carpentry",
            wage="900/day",
            duration="2 days",
        )
        print(f"Sample job {job.id} created.")

if __name__ == "__main__":
    create_initial_data()
