import asyncio

import pytest

from core.once import Once


class Initializer:
    def __init__(self, fail_times=0):
        self.calls = 0
        self.fail_times = fail_times

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0.01)
        if self.calls <= self.fail_times:
            raise RuntimeError(f"init failed ({self.calls})")


async def test_concurrent_callers_share_one_attempt():
    init = Initializer()
    once = Once(init)

    await asyncio.gather(*(once() for _ in range(20)))

    assert init.calls == 1
    assert once.done


async def test_success_is_not_repeated():
    init = Initializer()
    once = Once(init)

    await once()
    await once()
    await once()

    assert init.calls == 1


async def test_concurrent_callers_see_the_same_failure():
    init = Initializer(fail_times=1)
    once = Once(init)

    results = await asyncio.gather(*(once() for _ in range(5)), return_exceptions=True)

    assert init.calls == 1
    assert all(isinstance(r, RuntimeError) for r in results)
    assert {str(r) for r in results} == {"init failed (1)"}
    assert not once.done


async def test_failed_attempt_is_retried_on_next_call():
    init = Initializer(fail_times=1)
    once = Once(init)

    with pytest.raises(RuntimeError):
        await once()
    await once()

    assert init.calls == 2
    assert once.done


async def test_cancelled_caller_does_not_cancel_shared_attempt():
    init = Initializer()
    once = Once(init)

    first = asyncio.ensure_future(once())
    await asyncio.sleep(0)
    first.cancel()
    await once()

    assert init.calls == 1
    assert once.done
