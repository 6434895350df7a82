"""
Three-Channel Future Demo

Demonstrates Success / Fail / Error routing, recovery, channel switching and
asyncio interop.
"""

import asyncio
import logging
from triad import Future


def delayed(value, seconds: float) -> Future:
    """Future that succeeds with ``value`` after ``seconds``."""
    loop = asyncio.get_running_loop()
    return Future(lambda success, fail, error: loop.call_later(seconds, success, value))


# Example 1: Awaiting the three channels
async def example_await():
    """Demo of awaiting futures."""
    print("\n=== Example 1: Await ===")

    print(f"Success: {await Future.succeed(42)}")      # (None, 42)
    print(f"Fail:    {await Future.fail('declined')}")  # ('declined',)

    try:
        await Future.throw(RuntimeError("defect"))
    except RuntimeError as e:
        print(f"Error raised: {e}")


# Example 2: A long chain that switches channels
async def example_chain():
    """Demo of routing through success / fail / catch handlers."""
    print("\n=== Example 2: Channel Switching ===")

    def explode(val):
        raise ValueError("raised from fail handler")

    result = await (delayed('order-17', 0.05)
                    .success(lambda val: delayed(f"loaded {val}", 0.05))
                    .success(lambda val: print(f"  got: {val}"))
                    .success(lambda _: Future.fail('out of stock'))
                    .fail(lambda val: print(f"  failed: {val}"))
                    .fail(explode)
                    .catch(lambda err: print(f"  caught: {err}") or Future.fail(1))
                    .success(lambda _: print("  never printed"))
                    .fail(lambda val: val + 5))

    print(f"Chain result: {result}")  # (6,)


# Example 3: finally_ keeps the outcome
async def example_finally():
    """Demo of cleanup callbacks."""
    print("\n=== Example 3: finally_ ===")

    result = await Future.fail('declined').finally_(lambda: print("  cleanup ran"))
    print(f"Still failed: {result}")


# Example 4: Aggregates delegate to asyncio
async def example_aggregates():
    """Demo of all / race / all_settled."""
    print("\n=== Example 4: Aggregates ===")

    print(f"all:         {await Future.all([Future.succeed(1), delayed(2, 0.01)])}")
    print(f"race:        {await Future.race([delayed('slow', 0.05), delayed('fast', 0.01)])}")

    settled = await Future.all_settled([Future.succeed('ok'), Future.throw(KeyError('k'))])
    for entry in settled:
        print(f"all_settled: {entry.status} {entry.value if entry.fulfilled else entry.reason!r}")


async def main():
    """Run all examples."""
    logging.basicConfig(level=logging.INFO)

    await example_await()
    await example_chain()
    await example_finally()
    await example_aggregates()

    print("\nAll examples completed!")


if __name__ == "__main__":
    asyncio.run(main())
