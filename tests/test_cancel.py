import threading

from opskit.cancel import Context, background, ignore_error_if_canceled


def test_background_starts_not_done():
    ctx = background()
    assert ctx.is_done() is False
    assert ctx.wait(0.01) is False


def test_cancel_marks_done_and_is_idempotent():
    ctx = background()
    ctx.cancel()
    ctx.cancel()
    assert ctx.is_done() is True
    assert ctx.wait(0) is True


def test_cancel_propagates_to_children_and_grandchildren():
    root = background()
    child = root.child()
    grandchild = child.child()
    root.cancel()
    assert child.is_done() and grandchild.is_done()


def test_child_cancel_does_not_affect_parent():
    root = background()
    child = root.child()
    child.cancel()
    assert child.is_done() is True
    assert root.is_done() is False


def test_child_of_canceled_parent_is_done():
    root = background()
    root.cancel()
    assert root.child().is_done() is True


def test_explicit_parent_constructor():
    root = background()
    child = Context(root)
    root.cancel()
    assert child.is_done() is True


def test_wait_wakes_up_on_cancel_from_other_thread():
    ctx = background()
    timer = threading.Timer(0.02, ctx.cancel)
    timer.start()
    try:
        assert ctx.wait(5) is True
    finally:
        timer.cancel()


def test_ignore_error_if_canceled():
    err = OSError("accept failed")
    ctx = background()
    assert ignore_error_if_canceled(ctx, err) is err
    ctx.cancel()
    assert ignore_error_if_canceled(ctx, err) is None


def test_ignore_error_if_canceled_passes_none_through():
    assert ignore_error_if_canceled(background(), None) is None