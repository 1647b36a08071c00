import threading

import pytest

from stream_volume.services.volume import SessionRegistry, SettingsStore, StreamSession, ValidationError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def session(clock):
    return StreamSession(clock=clock)


def test_peek_is_side_effect_free(session):
    username, record, reading = session.peek('Newcomer')
    assert username == 'newcomer'
    assert record is None
    assert reading.volume == 0.5
    assert len(session.registry) == 0


def test_record_message_reports_before_and_after(session):
    for _ in range(9):
        result = session.record_message('Eve')
    assert result.after.volume == 0.5
    assert not result.level_up

    result = session.record_message('Eve')
    assert result.record.message_count == 10
    assert result.before.volume == 0.5
    assert result.after.volume == 0.55
    assert result.level_up
    assert result.counter == 'messages'


def test_k_messages_match_formula(session):
    for _ in range(23):
        result = session.record_message('frank')
    assert result.record.message_count == 23
    assert result.after.volume == pytest.approx(0.6)


def test_tts_does_not_move_message_driven_volume(session):
    for _ in range(10):
        session.record_message('gina')
    result = session.record_tts('gina', 'hi')
    assert result.record.tts_count == 1
    assert result.before.volume == result.after.volume == 0.55
    assert not result.level_up


def test_tts_driven_volume_charges_for_this_use():
    session = StreamSession(settings=SettingsStore(), clock=FakeClock())
    session.update_settings({'counter': 'tts', 'mode': 'continuous', 'startVolume': 0.2, 'incrementPerEvent': 0.1})
    first = session.record_tts('hank')
    assert first.before.volume == 0.2
    assert first.after.volume == pytest.approx(0.3)
    second = session.record_tts('hank')
    assert second.before.volume == pytest.approx(0.3)
    assert second.after.volume == pytest.approx(0.4)


def test_leaderboard_defaults_and_caps():
    session = StreamSession(leaderboard_size=10, leaderboard_max=12, clock=FakeClock())
    for i in range(15):
        session.record_message(f'user{i}')
    assert len(session.leaderboard()) == 10
    assert len(session.leaderboard(limit=3)) == 3
    assert len(session.leaderboard(limit=50)) == 12
    assert session.leaderboard(limit=-1) == []


def test_leaderboard_defaults_to_driving_counter(session):
    session.record_message('talker')
    session.record_tts('speaker')
    session.record_tts('speaker')
    assert session.leaderboard()[0][0] == 'talker'
    session.update_settings({'counter': 'tts'})
    assert session.leaderboard()[0][0] == 'speaker'
    with pytest.raises(ValidationError):
        session.leaderboard(by='bits')


def test_stats_and_reset(session, clock):
    session.record_message('a')
    session.record_message('a')
    session.record_tts('b')
    clock.now += 90
    stats = session.stats()
    assert stats['total_users'] == 2
    assert stats['total_messages'] == 2
    assert stats['total_tts'] == 1
    assert stats['uptime'] == 90
    assert stats['session_uptime'] == 90

    clock.now += 10
    assert session.reset() == 2
    stats = session.stats()
    assert stats['total_users'] == stats['total_messages'] == stats['total_tts'] == 0
    assert stats['uptime'] == 100
    assert stats['session_uptime'] == 0
    assert stats['session_started_at'] == clock.now

    _, record, reading = session.peek('a')
    assert record is None
    assert reading.volume == 0.5


def test_from_config_reads_leaderboard_and_settings():
    session = StreamSession.from_config({
        'VOLUME_MODE': 'continuous',
        'BASE_VOLUME': 0.1,
        'VOLUME_INCREMENT': 0.02,
        'MAX_VOLUME': 0.9,
        'MIN_VOLUME': 0.0,
        'LEADERBOARD_SIZE': 5,
        'LEADERBOARD_MAX': 20,
    })
    assert session.leaderboard_size == 5
    assert session.leaderboard_max == 20
    assert session.settings().mode == 'continuous'
    for _ in range(10):
        result = session.record_message('ivy')
    assert result.after.volume == 0.3


def test_stats_during_reset_sees_new_session_start(clock):
    seen = []

    class SlowResetRegistry(SessionRegistry):
        def reset_all(self):
            cleared = super().reset_all()
            clock.now += 50
            # a reader arriving mid-reset must wait for the new start time
            self.reader = threading.Thread(target=lambda: seen.append(session.stats()))
            self.reader.start()
            self.reader.join(timeout=0.2)
            return cleared

    registry = SlowResetRegistry(clock=clock)
    session = StreamSession(registry=registry, clock=clock)
    session.record_message('a')
    session.reset()
    registry.reader.join()
    assert seen[0]['total_users'] == 0
    assert seen[0]['session_started_at'] == clock.now
    assert seen[0]['session_uptime'] == 0
