"""
Barrels Seeders Module.

Insertion and deferred-association passes over a shared run context.
"""

from database.seeds.seeders.base import BaseSeeder
from database.seeds.seeders.engine import SeedingEngine
from database.seeds.seeders.resolver import AssociationResolver

__all__ = [
    "BaseSeeder",
    "SeedingEngine",
    "AssociationResolver",
]
