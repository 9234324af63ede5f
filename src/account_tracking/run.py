from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from account_tracking.config import load_settings, resolve_data_dir
from account_tracking.errors import AuditError
from account_tracking.status import AccountTrackingService
from account_tracking.store import FrameTicketStore
from request_codes.mapper import RequestCodeMapper


STATUS_COLUMNS = ["account_type", "status", "account_action", "request_code", "issue_id", "closed_on"]
OPEN_COLUMNS = ["account_type", "account_action", "request_code", "issue_id"]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="account_tracking.run", description="Account status for one employee")
    parser.add_argument("employee_id")
    parser.add_argument("--settings", type=Path, default=None)
    parser.add_argument("--data-dir", type=Path, default=None)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
                        format="%(levelname)s %(message)s")

    try:
        settings = load_settings(args.settings)
        store = FrameTicketStore.from_csv_dir(resolve_data_dir(settings, args.data_dir))
        tracking = AccountTrackingService(store, settings.fields, RequestCodeMapper(settings.request_code_mappings))
        statuses = tracking.statuses_for_employee(args.employee_id)
        open_requests = tracking.open_requests_for_employee(args.employee_id)
    except AuditError as exc:
        print(f"✗ {exc}")
        return 1

    print(f"Employee {args.employee_id}")
    print("\nAccount statuses:")
    if statuses:
        print(pd.DataFrame([s.to_dict() for s in statuses], columns=STATUS_COLUMNS).to_string(index=False))
    else:
        print("  (none)")

    print("\nOpen requests:")
    if open_requests:
        print(pd.DataFrame([r.to_dict() for r in open_requests], columns=OPEN_COLUMNS).to_string(index=False))
    else:
        print("  (none)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
