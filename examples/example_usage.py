"""Example: drive the service layer directly (no Flask, in-memory storage).

Controllers are a thin layer; the check-in rules live in AttendanceService.
"""

from gym_access.config.settings import Settings
from gym_access.container import build_container, seed_memory_users


def main():
    settings = Settings(jwt_secret="example", jwt_refresh_secret="example-refresh", storage_backend="memory")
    container = build_container(settings)
    seed_memory_users(container)

    member = container.users_repo.get_by_email("member@gym.local")
    qr = container.qr_issuer.generate_check_in_qr(member.user_id, member.role)
    print(container.attendance_service.check_in(qr.token).to_dict())
    print(container.attendance_service.get_status(member.user_id).to_dict())
    print(container.attendance_service.check_out(member.user_id).to_dict())


if __name__ == "__main__":
    main()
