"""Slideshow presentation state and timer."""

import asyncio

from wedsnap.services.slideshow_service import DEFAULT_INTERVAL_MS, Slideshow


def test_defaults():
    show = Slideshow()
    assert show.interval_ms == DEFAULT_INTERVAL_MS == 5000
    assert show.is_playing is True
    assert show.current_index == 0


def test_advance_wraps():
    show = Slideshow(length=3)
    assert [show.advance() for _ in range(4)] == [1, 2, 0, 1]


def test_advance_on_empty_list_stays_put():
    show = Slideshow(length=0)
    assert show.advance() == 0
    assert show.previous() == 0


def test_previous_wraps():
    show = Slideshow(length=3)
    assert show.previous() == 2


def test_shrink_clamps_index():
    show = Slideshow(length=3)
    show.current_index = 2

    assert show.sync_length(2) == 1


def test_shrink_to_empty_clamps_to_zero():
    show = Slideshow(length=2)
    show.current_index = 1

    assert show.sync_length(0) == 0


def test_growth_leaves_index_unchanged():
    show = Slideshow(length=3)
    show.current_index = 1

    assert show.sync_length(5) == 1


def test_toggle():
    show = Slideshow()
    assert show.toggle() is False
    assert show.toggle() is True


def test_timer_advances_while_playing():
    advanced = []

    async def scenario():
        show = Slideshow(interval_ms=20, length=3)

        async def on_advance(index):
            advanced.append(index)

        task = asyncio.create_task(show.run(on_advance))
        await asyncio.sleep(0.15)
        show.stop()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(scenario())
    assert len(advanced) >= 2
    assert advanced[:2] == [1, 2]


def test_timer_idle_while_paused():
    advanced = []

    async def scenario():
        show = Slideshow(interval_ms=10, length=3, playing=False)

        async def on_advance(index):
            advanced.append(index)

        task = asyncio.create_task(show.run(on_advance))
        await asyncio.sleep(0.08)
        show.stop()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(scenario())
    assert advanced == []


def test_manual_move_restarts_timer():
    advanced = []

    async def scenario():
        show = Slideshow(interval_ms=100, length=5)

        async def on_advance(index):
            advanced.append(index)

        task = asyncio.create_task(show.run(on_advance))
        await asyncio.sleep(0.06)
        show.advance()  # index 1; the 100ms wait starts over
        await asyncio.sleep(0.06)
        assert advanced == []
        show.stop()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(scenario())
