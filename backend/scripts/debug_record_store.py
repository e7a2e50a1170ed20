"""
Probe the agency tables for an email address.
Prints what each table returns for a case-insensitive match, to diagnose
"Agency not found for user" reports.
Run: python scripts/debug_record_store.py someone@agency.com
"""

import os
import sys

# Add parent directory to path for partner_portal imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from partner_portal.core.config import settings
from partner_portal.core.errors import ConfigurationError
from partner_portal.datastore.client import RecordStoreError
from partner_portal.datastore.query import IEq, SelectQuery
from partner_portal.datastore.registry import create_registry
from partner_portal.datastore.schema import AgencyFields

# Access table of older bases first, then the configured agency table
TABLES = ["Acessos", settings.agency_table]


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/debug_record_store.py <email>")
        sys.exit(1)
    email = sys.argv[1].strip()

    print(f"Base: {settings.base_id_prefix} | agency base: {settings.agency_base_id[:7]}...")
    print(f"Looking up: {email}")

    registry = create_registry(settings)
    try:
        base = registry.base(settings.agency_base_id)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}")
        sys.exit(1)

    query = SelectQuery(where=IEq(AgencyFields.EMAIL, email), max_records=1)
    found = False
    try:
        for table in TABLES:
            print(f"\n[{table}] filter: {query.describe()['filter']}")
            try:
                records = base.table(table).select(query)
            except RecordStoreError as e:
                print(f"  FAILED ({type(e).__name__}): {e}")
                continue
            if not records:
                print("  no match")
                continue
            found = True
            record = records[0]
            print(f"  match: {record.id}")
            for name, value in sorted(record.fields.items()):
                print(f"    {name}: {value!r}")
    finally:
        registry.close()

    print("\nDone." if found else "\nNo table returned a match.")


if __name__ == "__main__":
    main()
