"""
Load simulation script to test API performance.

Each simulated player registers an account, then loops over score submissions,
leaderboard pages and stats requests until the run ends.

Usage:
    python scripts/load_simulator.py [base_url] [concurrent_players] [duration_seconds]
"""
import asyncio
import aiohttp
import time
import random
import statistics
import uuid
from datetime import datetime
from collections import defaultdict
import sys

CATEGORIES = ["heroes", "movies", "musicians", "videogames"]
DIFFICULTIES = ["easy", "medium", "hard"]


class LoadSimulator:
    """Load simulator for API testing."""

    def __init__(self, base_url: str, concurrent_players: int, duration_seconds: int):
        self.base_url = base_url.rstrip("/")
        self.concurrent_players = concurrent_players
        self.duration_seconds = duration_seconds
        self.results = defaultdict(list)
        self.errors = defaultdict(int)
        self.total_requests = 0
        self.start_time = None

    async def _timed(self, name: str, request, ok_statuses=(200,)):
        start = time.time()
        try:
            async with request as response:
                self.results[name].append((time.time() - start) * 1000)
                self.total_requests += 1
                if response.status not in ok_statuses:
                    self.errors[name] += 1
                if response.content_type == "application/json":
                    return await response.json()
        except Exception as e:
            self.errors[name] += 1
            print(f"Error in {name}: {e}")
        return None

    async def register(self, session: aiohttp.ClientSession) -> str:
        """Create a throwaway account and return its bearer token."""
        suffix = uuid.uuid4().hex[:10]
        body = await self._timed("register", session.post(
            f"{self.base_url}/api/auth/register",
            json={"username": f"load_{suffix}", "email": f"load_{suffix}@example.com", "password": "loadtest"},
        ), ok_statuses=(201,))
        return body["data"]["token"] if body and body.get("success") else ""

    async def submit_score(self, session: aiohttp.ClientSession, token: str, player_name: str):
        payload = {
            "playerName": player_name,
            "category": random.choice(CATEGORIES),
            "difficulty": random.choice(DIFFICULTIES),
            "time": random.randint(20, 400),
            "moves": random.randint(8, 120),
        }
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        # 409 is an expected outcome when random payloads collide
        await self._timed("submit_score", session.post(
            f"{self.base_url}/api/scores", json=payload, headers=headers,
        ), ok_statuses=(201, 409))

    async def get_scores(self, session: aiohttp.ClientSession):
        params = {
            "category": random.choice(CATEGORIES + ["all"]),
            "difficulty": random.choice(DIFFICULTIES + ["all"]),
            "limit": 10,
            "page": random.randint(1, 3),
        }
        await self._timed("get_scores", session.get(f"{self.base_url}/api/scores", params=params))

    async def get_stats(self, session: aiohttp.ClientSession):
        await self._timed("get_stats", session.get(f"{self.base_url}/api/stats"))

    async def player_session(self, session: aiohttp.ClientSession, player_number: int):
        """Simulate a single player's behavior."""
        token = await self.register(session)
        player_name = f"Player{player_number}"
        end_time = self.start_time + self.duration_seconds

        while time.time() < end_time:
            rand = random.random()

            if rand < 0.50:
                await self.submit_score(session, token, player_name)
            elif rand < 0.90:
                await self.get_scores(session)
            else:
                await self.get_stats(session)

            await asyncio.sleep(random.uniform(0.1, 0.5))

    async def run(self):
        print("="*60)
        print("MEMORY MATCH LOAD SIMULATOR")
        print("="*60)
        print(f"Base URL: {self.base_url}")
        print(f"Concurrent Players: {self.concurrent_players}")
        print(f"Duration: {self.duration_seconds} seconds")
        print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("="*60)

        self.start_time = time.time()

        connector = aiohttp.TCPConnector(limit=100)
        timeout = aiohttp.ClientTimeout(total=30)

        async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
            tasks = [self.player_session(session, n) for n in range(self.concurrent_players)]
            await asyncio.gather(*tasks)

        self.print_results()

    def calculate_percentile(self, data, percentile):
        if not data:
            return 0
        sorted_data = sorted(data)
        index = int(len(sorted_data) * percentile / 100)
        return sorted_data[min(index, len(sorted_data) - 1)]

    def print_results(self):
        total_duration = time.time() - self.start_time

        print("\n" + "="*60)
        print("SIMULATION RESULTS")
        print("="*60)
        print(f"Total Duration: {total_duration:.2f} seconds")
        print(f"Total Requests: {self.total_requests:,}")
        print(f"Requests/Second: {self.total_requests / total_duration:.2f}")
        print(f"Total Errors: {sum(self.errors.values())}")
        print("="*60)

        for endpoint, latencies in self.results.items():
            if not latencies:
                continue

            print(f"\n{endpoint.upper().replace('_', ' ')}")
            print("-" * 40)
            print(f"  Total Requests: {len(latencies):,}")
            print(f"  Errors: {self.errors.get(endpoint, 0)}")
            print(f"  Avg Latency: {statistics.mean(latencies):.2f} ms")
            print(f"  Median (p50): {self.calculate_percentile(latencies, 50):.2f} ms")
            print(f"  p95 Latency: {self.calculate_percentile(latencies, 95):.2f} ms")
            print(f"  p99 Latency: {self.calculate_percentile(latencies, 99):.2f} ms")

        error_rate = (sum(self.errors.values()) / self.total_requests * 100) if self.total_requests > 0 else 0
        print(f"\nError Rate: {error_rate:.2f}%")
        print("="*60)


async def main():
    base_url = "http://localhost:3002"
    concurrent_players = 20
    duration_seconds = 60

    if len(sys.argv) > 1:
        base_url = sys.argv[1]
    if len(sys.argv) > 2:
        concurrent_players = int(sys.argv[2])
    if len(sys.argv) > 3:
        duration_seconds = int(sys.argv[3])

    simulator = LoadSimulator(base_url, concurrent_players, duration_seconds)
    await simulator.run()


if __name__ == "__main__":
    asyncio.run(main())
