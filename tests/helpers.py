import asyncio


async def wait_for(predicate, timeout=2.0):
    """Spin the event loop until `predicate()` holds or fail."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)
