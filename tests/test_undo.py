from clipkeep.models import Tombstone
from clipkeep.undo import UndoBuffer


def tombstone(item, clock, index=0):
    return Tombstone(item=item, index=index, deleted_at=clock())


class TestUndoBuffer:
    def test_pop_empty(self, clock):
        assert UndoBuffer(now=clock).pop() is None

    def test_push_and_pop(self, clock, make_item):
        buf = UndoBuffer(now=clock)
        entry = tombstone(make_item("a"), clock, index=3)
        buf.push(entry)
        assert buf.pop() is entry
        assert len(buf) == 0

    def test_expires_after_timeout(self, clock, make_item):
        buf = UndoBuffer(timeout=30, now=clock)
        buf.push(tombstone(make_item("a"), clock))
        clock.advance(30.5)
        assert buf.peek() is None
        assert buf.pop() is None

    def test_single_slot_by_default(self, clock, make_item):
        buf = UndoBuffer(now=clock)
        buf.push(tombstone(make_item("a"), clock))
        newer = tombstone(make_item("b"), clock)
        buf.push(newer)
        assert len(buf) == 1
        assert buf.pop() is newer

    def test_deeper_stack(self, clock, make_item):
        buf = UndoBuffer(depth=3, now=clock)
        first = tombstone(make_item("a"), clock)
        buf.push(first)
        clock.advance(20)
        second = tombstone(make_item("b"), clock)
        buf.push(second)
        clock.advance(15)

        # first is now 35s old
        assert len(buf) == 1
        assert buf.pop() is second

    def test_clear(self, clock, make_item):
        buf = UndoBuffer(now=clock)
        buf.push(tombstone(make_item("a"), clock))
        buf.clear()
        assert buf.peek() is None
