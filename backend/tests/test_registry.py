import threading

from decider.services.sessions import SessionRegistry


def test_create_registers_creator_as_disconnected():
    reg = SessionRegistry()
    session = reg.create('c1', 'Carol', '10.0.0.1', name='Lunch', lock_navigation=True)
    assert reg.get(session.id) is session
    assert session.creator_id == 'c1'
    assert session.participants['c1'].name == 'Carol'
    assert session.participants['c1'].connected is False
    assert session.lock_navigation is True
    assert session.name == 'Lunch'
    assert reg.get('missing') is None
    assert reg.get(None) is None


def test_create_applies_item_policy():
    reg = SessionRegistry(item_cap=3, phase_gated=False)
    session = reg.create('c1', 'Carol')
    assert session.item_cap == 3
    assert session.phase_gated is False


def test_count_by_creator_ip():
    reg = SessionRegistry()
    reg.create('c1', 'A', '10.0.0.1')
    reg.create('c2', 'B', '10.0.0.1')
    reg.create('c3', 'C', '10.0.0.2')
    assert reg.count_by_creator_ip('10.0.0.1') == 2
    assert reg.count_by_creator_ip('10.0.0.9') == 0


def test_sweep_respects_idle_window():
    reg = SessionRegistry(idle_timeout=300)
    idle = reg.create('c1', 'A')
    active = reg.create('c2', 'B')
    active.all_disconnected_at = None
    idle.all_disconnected_at = 1000.0

    assert reg.sweep_expired(now=1000.0 + 299) == []
    assert reg.get(idle.id) is idle

    assert reg.sweep_expired(now=1000.0 + 300) == [idle.id]
    assert reg.get(idle.id) is None
    assert reg.get(active.id) is active
    assert len(reg) == 1


def test_sweep_skips_session_mid_command():
    reg = SessionRegistry(idle_timeout=1)
    session = reg.create('c1', 'A')
    session.all_disconnected_at = 0.0
    held = threading.Event()
    release = threading.Event()

    def _hold():
        with session.lock:
            held.set()
            release.wait(5)

    worker = threading.Thread(target=_hold)
    worker.start()
    held.wait(5)
    try:
        assert reg.sweep_expired(now=100.0) == []
    finally:
        release.set()
        worker.join()
    assert reg.sweep_expired(now=100.0) == [session.id]
