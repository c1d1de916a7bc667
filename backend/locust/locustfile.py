"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Many users, one slot
  locust -f locustfile.py --tags throughput   # Slot grid cache
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import random
from datetime import date, timedelta
from locust import HttpUser, task, between, tag, events

API = "/api/v1"
OWNER_ID = "load-owner"
TARGET_DATE = (date.today() + timedelta(days=7)).isoformat()

# Shared state
TURF_ID = None
SLOT_IDS = []
CONTENDED_SLOT_ID = None

FLAT = {"morning": 800, "afternoon": 800, "evening": 1000, "night": 600}


def random_phone():
    return "9" + "".join(random.choices("0123456789", k=9))


def ensure_turf(client):
    """Create one turf with generated slots, shared by every user."""
    global TURF_ID, CONTENDED_SLOT_ID
    if TURF_ID:
        return

    resp = client.post(f"{API}/turfs/", json={
        "owner_id": OWNER_ID,
        "name": "Load Test Arena",
        "open_time": "06:00:00",
        "close_time": "23:00:00",
        "slot_duration_minutes": 60,
        "number_of_nets": 2,
        "pricing_rules": {"net_pricing": [
            {"net_number": 1, "weekday": FLAT, "weekend": FLAT, "holiday": FLAT},
        ]},
    })
    if resp.status_code != 201:
        return
    TURF_ID = resp.json()["id"]

    client.post(f"{API}/turfs/{TURF_ID}/slots/generate", json={"date": TARGET_DATE})
    resp = client.get(f"{API}/turfs/{TURF_ID}/slots", params={"date": TARGET_DATE})
    if resp.status_code == 200:
        available = [s["id"] for s in resp.json()["slots"] if s["status"] == "AVAILABLE"]
        SLOT_IDS.extend(available)
        if available:
            CONTENDED_SLOT_ID = available[len(available) // 2]
            print(f"\n✓ Turf {TURF_ID}: {len(available)} slots, contended slot {CONTENDED_SLOT_ID}\n")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"SETUP: slots for {TARGET_DATE} are created by the first user")
    print("="*60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - everyone wants the same evening slot

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE slot_id = X AND booking_status = 'CONFIRMED';
    Should be <= 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        ensure_turf(self.client)
        self.holder_id = f"user-{random.randint(10000, 99999)}"

    @tag("contention")
    @task(3)
    def reserve_slot(self):
        if not CONTENDED_SLOT_ID:
            return
        with self.client.post(f"{API}/slots/{CONTENDED_SLOT_ID}/reserve",
            json={"holder_id": self.holder_id},
            name="/api/v1/slots/{id}/reserve",
            catch_response=True
        ) as resp:
            if resp.status_code == 200:
                resp.success()  # success=false is an expected answer
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(1)
    def book_slot(self):
        if not CONTENDED_SLOT_ID:
            return
        with self.client.post(f"{API}/bookings/",
            json={
                "slot_id": CONTENDED_SLOT_ID,
                "customer_name": self.holder_id,
                "customer_phone": random_phone(),
                "booking_source": random.choice(["APP", "PHONE", "WALK_IN"]),
                "amount": 1000,
            },
            name="/api/v1/bookings/ [contended]",
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: someone else has it
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - slot grid cache effectiveness

    Run twice, with and without Redis (REDIS_ENABLED=false), and compare
    requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        ensure_turf(self.client)

    @tag("throughput", "read")
    @task(10)
    def slot_grid(self):
        if TURF_ID:
            self.client.get(f"{API}/turfs/{TURF_ID}/slots",
                params={"date": TARGET_DATE},
                name="/api/v1/turfs/{id}/slots [cached]")

    @tag("throughput", "read")
    @task(3)
    def slot_detail(self):
        if SLOT_IDS:
            self.client.get(f"{API}/slots/{random.choice(SLOT_IDS)}", name="/api/v1/slots/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input must map to proper error codes, never 500

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_slot(self):
        with self.client.post(f"{API}/slots/999999/reserve",
            json={"holder_id": "ghost"},
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def advance_exceeds_amount(self):
        with self.client.post(f"{API}/bookings/",
            json={"slot_id": 1, "customer_name": "x", "customer_phone": "999",
                  "amount": 100, "advance_amount": 500},
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def cancel_unknown_booking(self):
        with self.client.post(f"{API}/bookings/999999/cancel",
            json={"slot_id": 1, "cancelled_by": "ghost"},
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(f"{API}/bookings/",
            data="not json at all",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly grid browsing, some leases (half abandoned), some bookings.
    """
    wait_time = between(1, 3)

    def on_start(self):
        ensure_turf(self.client)
        self.holder_id = f"user-{random.randint(10000, 99999)}"

    @task(50)
    def browse_grid(self):
        if TURF_ID:
            self.client.get(f"{API}/turfs/{TURF_ID}/slots", params={"date": TARGET_DATE},
                name="/api/v1/turfs/{id}/slots")

    @task(10)
    def reserve_then_maybe_release(self):
        if not SLOT_IDS:
            return
        slot_id = random.choice(SLOT_IDS)
        resp = self.client.post(f"{API}/slots/{slot_id}/reserve",
            json={"holder_id": self.holder_id}, name="/api/v1/slots/{id}/reserve")
        if resp.status_code == 200 and resp.json().get("success") and random.random() < 0.5:
            self.client.post(f"{API}/slots/{slot_id}/release", name="/api/v1/slots/{id}/release")

    @task(5)
    def book(self):
        if SLOT_IDS:
            self.client.post(f"{API}/bookings/",
                json={"slot_id": random.choice(SLOT_IDS), "customer_name": self.holder_id,
                      "customer_phone": random_phone(), "amount": 800,
                      "advance_amount": random.choice([0, 200])},
                name="/api/v1/bookings/")
