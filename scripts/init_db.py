"""Recreate the tables and seed a week of sample production.

Usage::

    python scripts/init_db.py

Rows are written through the service layer, so the audit log is seeded
along with the counters.
"""

import random
from datetime import date, timedelta

from production_tracker import create_app, db
from production_tracker import service

app = create_app()

WORKERS = [
    ("Rajesh Kumar", "Cutter"),
    ("Priya Sharma", "Tailor"),
    ("Amit Singh", "Tailor"),
    ("Sunita Devi", "Checker"),
    ("Ravi Patel", "Packer"),
]

with app.app_context():
    db.drop_all()
    db.create_all()

    workers = [service.add_worker(name, role) for name, role in WORKERS]

    today = date.today()
    rng = random.Random(42)
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        for w in workers:
            issued = rng.randint(40, 120)
            produced = rng.randint(issued // 2, issued)
            service.record_action(w.id, day, "issue", issued)
            service.record_action(w.id, day, "produce", produced)
            altered = rng.randint(0, produced // 10)
            if altered:
                service.record_action(w.id, day, "alteration", altered)
            service.record_action(w.id, day, "qc", produced - altered)
            service.record_action(w.id, day, "pack", produced - altered)

    print(f"Database initialized: {len(workers)} workers, 7 days of production.")
