"""Locust profile for mixed create/redirect/stats traffic.

Redirects hammer a small pool of recently created shortcodes so that many
users append clicks to the same record concurrently; compare ``totalClicks``
from the stats endpoint with Locust's redirect count afterwards.

Run::
    locust -f stress/locustfile.py --host http://localhost:8000
"""

import random

from locust import HttpUser, between, task

MAX_CODES_PER_USER = 50


class ShortlinkUser(HttpUser):
    """Mixed workload user for local load checks."""

    wait_time = between(0.1, 0.5)

    def on_start(self) -> None:
        self.codes: list[str] = []

    @task(2)
    def create_short_url(self) -> None:
        url = f"https://example.com/page/{random.randint(1, 1000000)}"
        payload = {"url": url, "validity": random.choice([5, 30, 120])}
        response = self.client.post("/shorturls", json=payload, name="POST /shorturls")

        if response.status_code == 201:
            short_link = response.json().get("shortLink")
            if short_link:
                self.codes.append(short_link.rsplit("/", 1)[-1])
                if len(self.codes) > MAX_CODES_PER_USER:
                    self.codes = self.codes[-MAX_CODES_PER_USER:]

    @task(6)
    def redirect(self) -> None:
        if not self.codes:
            self.create_short_url()
            return

        shortcode = random.choice(self.codes)
        with self.client.get(
            f"/{shortcode}",
            name="GET /:shortcode",
            allow_redirects=False,
            headers={"Referer": "https://load.test/"},
            catch_response=True,
        ) as response:
            if response.status_code in (302, 410):
                response.success()

    @task(2)
    def stats(self) -> None:
        if not self.codes:
            self.create_short_url()
            return

        shortcode = random.choice(self.codes)
        self.client.get(f"/shorturls/{shortcode}", name="GET /shorturls/:shortcode")
