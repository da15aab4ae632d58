from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.gym_access.gym_access.container import build_container
from src.gym_access.gym_access.core.enums import PaymentMethod, PlanKind
from src.gym_access.gym_access.database.bootstrap import ensure_demo_members
from src.gym_access.gym_access.main import settings_from_module


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_members(db_config)

    container = build_container(db_config=db_config, settings=settings_from_module(settings))
    ledger = container.membership_ledger
    if not ledger.is_entitled("demo-member"):
        record = ledger.renew(
            "demo-member",
            staff_id="demo-staff",
            staff_name="Recepción Demo",
            plan_kind=PlanKind.MONTHLY,
            payment_method=PaymentMethod.CASH,
            amount="550",
        )
        print(f"Renewed demo-member until {record.period_end:%Y-%m-%d %H:%M}")

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main()
