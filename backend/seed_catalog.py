#!/usr/bin/env python3
"""
Seed a demo catalog and one shopkeeper account.
Usage: python seed_catalog.py [telegram_chat_id]
"""
import sys
from decimal import Decimal

from medorder.db.init_db import init_db
from medorder.db.session import SessionLocal
from medorder.models.account import Account
from medorder.models.catalog import CatalogItem

MEDICINES = [
    ("Paracetamol 500mg", 200, "12.50"),
    ("Amoxicillin 250mg", 80, "45.00"),
    ("Cetirizine 10mg", 150, "18.00"),
    ("Ibuprofen 400mg", 120, "22.00"),
    ("Azithromycin 500mg", 40, "98.00"),
    ("Omeprazole 20mg", 90, "35.00"),
    ("Metformin 500mg", 60, "28.50"),
    ("ORS Sachet", 300, "6.00"),
    ("Vitamin C 500mg", 8, "15.00"),
]


def seed(telegram_id: str = None):
    init_db()
    db = SessionLocal()
    try:
        added = 0
        for name, quantity, price in MEDICINES:
            if db.query(CatalogItem).filter(CatalogItem.name == name).first():
                print(f"⊙ {name} already exists, skipping")
                continue
            db.add(CatalogItem(name=name, quantity_available=quantity, unit_price=Decimal(price)))
            added += 1
            print(f"✓ Added {name} ({quantity} units @ ₹{price})")

        if telegram_id and not db.query(Account).filter(Account.telegram_id == telegram_id).first():
            db.add(Account(display_name="Demo Pharmacy", telegram_id=telegram_id, address="Main Road"))
            print(f"✓ Registered account for chat {telegram_id}")

        db.commit()
        print(f"\n✅ Seeded {added} catalog items")
    except Exception as e:
        db.rollback()
        print(f"❌ Seeding failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed(sys.argv[1] if len(sys.argv) > 1 else None)
