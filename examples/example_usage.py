"""Example: drive the service layer directly (no Flask).

Controllers stay thin; the scan flow lives in AccessService.
"""

import importlib

from config import get_settings_module

from src.gym_access.gym_access.container import build_container
from src.gym_access.gym_access.main import settings_from_module


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings_from_module(settings))

    code = container.signer.issue_encoded("demo-member")
    outcome = container.access_service.process_scan(
        code,
        kind="entry",
        staff_id="demo-staff",
        location_id=container.settings.default_location_id,
    )
    print(outcome.as_dict())
    print(container.attendance_ledger.stats("demo-member"))


if __name__ == "__main__":
    main()
