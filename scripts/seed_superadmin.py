import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from apps.dashboard.database import get_session_factory  # noqa: E402
from apps.dashboard.services.seed import ensure_superadmin  # noqa: E402


def main() -> int:
    factory = get_session_factory()
    with factory() as db:
        admin, generated_password = ensure_superadmin(db)
    print(f"Superadmin: {admin.username} (role={admin.role})")
    if generated_password:
        print(f"Password: {generated_password}")
        print("Auto-generated. Save this password now.")
    else:
        print("Password unchanged or set via SUPERADMIN_PASSWORD.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
