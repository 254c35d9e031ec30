"""Hammer a running server with concurrent actions for the same workers.

Several threads post actions for a handful of workers at once; expect a
mix of 200s and 409s, the latter being edits that lost the race on the
same record.
"""

import random, threading, time

import requests

BASE = "http://127.0.0.1:5000"

ACTIONS = ["issue", "produce", "alteration", "qc", "pack"]


def worker_loop(worker_id):
    for _ in range(5):
        action = random.choice(ACTIONS)
        r = requests.post(f"{BASE}/api/production/actions", json={
            "worker_id": worker_id,
            "action": action,
            "quantity": random.randint(1, 20),
        })
        print(worker_id, action, r.status_code, r.json().get("error", "ok"))
        time.sleep(random.uniform(0.05, 0.3))


workers = requests.get(f"{BASE}/api/workers").json()["workers"][:3]
threads = [threading.Thread(target=worker_loop, args=(w["id"],)) for w in workers for _ in range(2)]
[t.start() for t in threads]
[t.join() for t in threads]
