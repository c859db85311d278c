import os
import requests

BASE = os.getenv("BIBOOP_URL", "http://localhost:8080")
NS = "smoke"
S = requests.Session()

r = S.get(f"{BASE}/health")
print("HEALTH:", r.status_code, r.text)
r.raise_for_status()

# A) Issue a pin
r = S.post(f"{BASE}/pin/{NS}")
print("ISSUE:", r.status_code, r.text)
r.raise_for_status()
pin = r.json()["pin"]

# B) Poll before anything was submitted
r = S.post(f"{BASE}/pin/{NS}/{pin}")
print("POLL (waiting):", r.status_code, r.text)

# C) Submit a result
r = S.put(f"{BASE}/pin/{NS}/{pin}", json={"x": 1})
print("SUBMIT:", r.status_code, r.text)

# D) Poll twice: the result comes back once, then a new pin
r = S.post(f"{BASE}/pin/{NS}/{pin}")
print("POLL (result):", r.status_code, r.text)
r = S.post(f"{BASE}/pin/{NS}/{pin}")
print("POLL (reissued):", r.status_code, r.text)
