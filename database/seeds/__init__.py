"""
Barrels - Fixture seeding.

- fixture_store: JSON fixture collections keyed by model
- identity_map: fixture position -> store identifier
- registry: association descriptors from the store schema
- seeders/: insertion pass and deferred association pass
- fixture_seeder: FixtureSeeder, the entry point

Seed from the command line:
    python -m database.seeds.run_all_seeds author book

Fixture records refer to other records by 1-based position in the target
model's file. Required associations are resolved at insert time, so their
target models must be listed first; optional ones are linked afterwards.
"""

from database.seeds.common import AssociationDescriptor, ModelState, SeedReport
from database.seeds.fixture_seeder import FixtureSeeder
from database.seeds.fixture_store import FixtureStore
from database.seeds.identity_map import IdentityMap
from database.seeds.registry import build_registry

__all__ = [
    "AssociationDescriptor",
    "FixtureSeeder",
    "FixtureStore",
    "IdentityMap",
    "ModelState",
    "SeedReport",
    "build_registry",
]
