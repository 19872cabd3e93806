import asyncio
import random

from wisebatch import passivetotal_lookup

OBSERVED_IPS = ["8.8.8.8", "1.1.1.1", "9.9.9.9", "8.8.4.4"]


async def on_connection(lookup, ip: str) -> None:
    """Tag one observed connection, as a session enricher would."""
    result = await lookup.lookup(ip)
    tags = ", ".join(result.tags) if not result.is_empty else "no tags"
    print(f"{ip}: {tags}")


async def main() -> None:
    """Simulate a burst of connections; repeated IPs share one bulk query slot."""
    async with passivetotal_lookup() as lookup:
        connections = [random.choice(OBSERVED_IPS) for _ in range(20)]
        await asyncio.gather(*(on_connection(lookup, ip) for ip in connections))


if __name__ == "__main__":
    asyncio.run(main())
