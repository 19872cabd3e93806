import asyncio

from wisebatch import DryRunTransport, LookupFacade


def print_result(error, result) -> None:
    if error is not None:
        print(f"lookup failed: {error}")
        return
    print(f"tags: {result.tags or 'none'}")


async def main() -> None:
    """Use the callback interface directly, without any network access."""
    async with LookupFacade(transport=DryRunTransport()) as lookup:
        for domain in ("example.com", "example.org", "example.com"):
            lookup.fetch(domain, print_result)
        await asyncio.sleep(delay=1.0)


if __name__ == "__main__":
    asyncio.run(main())
