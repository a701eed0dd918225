"""
Seed script -- populates the database with sample hosts for reviewers.

Run after migrations:
    python seed.py

Creates six hosts and drives each one through the coverage service so
tiers, history, audit rows and notifications are all consistent:
  - no coverage (BASIC)
  - P2P pending review (BASIC)
  - P2P active (STANDARD)
  - commercial active (PREMIUM)
  - commercial active with P2P suppressed to INACTIVE (PREMIUM)
  - commercial rejected, P2P active (STANDARD)
"""

import asyncio
from datetime import date

from sqlalchemy import text

from host_coverage.domain.enums import CoverageKind
from host_coverage.infrastructure.database import async_session_factory, engine
from host_coverage.infrastructure.locks import LocalHostLocks
from host_coverage.infrastructure.repositories import HostRepository
from host_coverage.services.coverage import CoverageService

SEED_ACTOR = "seed@fleet.local"
P2P, COMMERCIAL = CoverageKind.P2P, CoverageKind.COMMERCIAL

HOSTS = [
    {"id": "host-basic", "name": "Aarav Sharma", "email": "aarav@example.com"},
    {"id": "host-pending", "name": "Priya Patel", "email": "priya@example.com"},
    {"id": "host-standard", "name": "Rohan Mehta", "email": "rohan@example.com"},
    {"id": "host-premium", "name": "Sneha Gupta", "email": "sneha@example.com"},
    {"id": "host-suppressed", "name": "Vikram Singh", "email": "vikram@example.com"},
    {"id": "host-rejected", "name": "Ananya Reddy", "email": "ananya@example.com"},
]

POLICIES = {
    P2P: {"provider": "Getaround Shield", "expires_at": date(2027, 6, 30)},
    COMMERCIAL: {"provider": "Progressive Commercial", "expires_at": date(2027, 12, 31)},
}


async def _submit(service: CoverageService, host_id: str, kind: CoverageKind) -> None:
    policy = POLICIES[kind]
    await service.submit_track(
        host_id,
        kind,
        host_id,
        provider=policy["provider"],
        policy_number=f"{kind.value}-{host_id.upper()}",
        expires_at=policy["expires_at"],
    )


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM hosts"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        repo = HostRepository(session)
        for h in HOSTS:
            await repo.create_host(h["id"], name=h["name"], email=h["email"])
        await session.commit()
        print(f"  Created {len(HOSTS)} hosts")

    service = CoverageService(async_session_factory, LocalHostLocks())

    await _submit(service, "host-pending", P2P)

    await _submit(service, "host-standard", P2P)
    await service.approve_track("host-standard", P2P, SEED_ACTOR)

    await _submit(service, "host-premium", COMMERCIAL)
    await service.approve_track("host-premium", COMMERCIAL, SEED_ACTOR)

    await _submit(service, "host-suppressed", P2P)
    await service.approve_track("host-suppressed", P2P, SEED_ACTOR)
    await _submit(service, "host-suppressed", COMMERCIAL)
    await service.approve_track("host-suppressed", COMMERCIAL, SEED_ACTOR)

    await _submit(service, "host-rejected", P2P)
    await service.approve_track("host-rejected", P2P, SEED_ACTOR)
    await _submit(service, "host-rejected", COMMERCIAL)
    await service.reject_track(
        "host-rejected", COMMERCIAL, SEED_ACTOR, "Policy does not list rideshare use"
    )

    for h in HOSTS:
        state = await service.get_host(h["id"])
        print(
            f"  {state.host_id:<16} {state.earnings_tier.value:<8} "
            f"P2P={state.p2p.status.value:<8} COMMERCIAL={state.commercial.status.value}"
        )

    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
