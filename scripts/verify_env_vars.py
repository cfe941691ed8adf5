import os
import re
from pathlib import Path

REQUIRED_IN_PRODUCTION = [
    "CRON_SECRET",
    "DATABASE_URL",
    "PUBLIC_APP_URL",
    "RESEND_API_KEY",
    "SECRET_KEY",
    "SUPABASE_SERVICE_KEY",
    "SUPABASE_URL",
]


def find_settings_vars():
    """Find all environment variables declared on the Settings model."""
    content = Path("app/config.py").read_text(encoding="utf-8")
    return sorted(set(re.findall(r'alias="([A-Z0-9_]+)"', content)))


def verify_environment():
    declared = set(find_settings_vars())
    unknown_required = sorted(set(REQUIRED_IN_PRODUCTION) - declared)
    missing = [name for name in REQUIRED_IN_PRODUCTION if not os.getenv(name)]

    print("=== ENV VAR VERIFICATION ===")
    print(f"Settings declare: {len(declared)} vars")
    print("")
    if unknown_required:
        print(f"REQUIRED BUT NOT DECLARED ({len(unknown_required)}):")
        for v in unknown_required:
            print(f"  - {v}")
        print("")
    if missing:
        print(f"MISSING FROM ENVIRONMENT ({len(missing)}):")
        for v in missing:
            print(f"  - {v}")
    else:
        print("All required vars are set.")
    return not missing and not unknown_required


if __name__ == "__main__":
    raise SystemExit(0 if verify_environment() else 1)
