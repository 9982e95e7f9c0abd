"""Unit tests for PlaybackEngine: state machine, synchronizer and tick."""

import pytest

from mot_playback.core.playback_state import PlaybackMode

from tests.unit.conftest import FakeTransport, make_frame, make_live_stream, make_sequence


class TestReplayTick:
    """Tick-driven replay on a single slot."""

    def test_play_requires_data(self, engine):
        assert engine.play() is False
        assert engine.mode == PlaybackMode.PAUSED

    def test_gap_example_scenario(self, engine, fake_clock, gap_sequence, collected):
        engine.set_gap_skipped_callback(collected.append)
        engine.occupy_slot(0, gap_sequence, "run")
        assert engine.play()

        assert engine.tick(0.5).index == 0
        assert engine.tick(1.0).index == 1
        assert engine.tick(1.2).index == 2

        # Still inside the 1.5s patience window.
        assert engine.tick(2.6).index == 2
        assert collected == []

        result = engine.tick(2.7)
        assert result.index == 3
        assert result.gap_skipped == pytest.approx(2.8)
        assert collected == [pytest.approx(2.8)]
        assert engine.clock.anchor.data_time == 4.0
        assert engine.clock.anchor.wall_time == 2.7

        result = engine.tick(3.1)
        assert result.index == 4
        assert result.mode == PlaybackMode.PAUSED

    def test_index_is_monotonic_without_seeks(self, engine, collected):
        timestamps = [0.0, 0.1, 0.3, 2.5, 2.6, 2.65, 6.0, 6.2, 9.9, 10.0]
        engine.occupy_slot(0, make_sequence(timestamps))
        engine.play()

        previous = 0
        now = 0.0
        while engine.mode == PlaybackMode.PLAYING and now < 60.0:
            now += 1 / 60
            index = engine.tick(now).index
            assert index >= previous
            previous = index
        assert previous == len(timestamps) - 1

    def test_stall_is_bounded_by_threshold(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1000.0]))
        engine.play()

        assert engine.tick(1.4).index == 0
        assert engine.tick(1.6).index == 1

    def test_gap_patience_shrinks_with_square_of_speed(self, engine, collected):
        # The window is threshold / speed in data time, reached after
        # threshold / speed**2 wall seconds: 0.375s at 2x.
        engine.set_gap_skipped_callback(collected.append)
        engine.occupy_slot(0, make_sequence([0.0, 1000.0]))
        engine.set_speed(2.0)
        engine.play()

        assert engine.tick(0.3).index == 0
        result = engine.tick(0.375)
        assert result.index == 1
        assert result.gap_skipped == pytest.approx(1000.0)
        assert collected == [pytest.approx(1000.0)]

    def test_gap_patience_grows_at_half_speed(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1000.0]))
        engine.set_speed(0.5)
        engine.play()

        assert engine.tick(5.9).index == 0
        assert engine.tick(6.0).index == 1

    def test_tick_uses_time_source_by_default(self, engine, fake_clock):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.play()
        fake_clock.set(1.0)
        assert engine.tick().index == 1

    def test_paused_tick_does_nothing(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        result = engine.tick(50.0)
        assert result.index == 0
        assert not result.moved

    def test_play_at_end_restarts_from_zero(self, engine, fake_clock):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.seek(2)
        fake_clock.set(10.0)

        assert engine.play()
        assert engine.current_index == 0
        assert engine.clock.anchor.data_time == 0.0
        assert engine.clock.anchor.wall_time == 10.0

    def test_play_anchors_at_current_frame(self, engine, fake_clock):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0, 3.0]))
        engine.seek(1)
        fake_clock.set(5.0)
        engine.play()

        assert engine.clock.anchor.data_time == 1.0
        assert engine.tick(6.0).index == 2

    def test_state_change_callback(self, engine, collected):
        engine.set_state_change_callback(lambda old, new: collected.append((old, new)))
        engine.occupy_slot(0, make_sequence([0.0, 1.0]))
        engine.play()
        engine.pause()

        assert collected == [
            (PlaybackMode.PAUSED, PlaybackMode.PLAYING),
            (PlaybackMode.PLAYING, PlaybackMode.PAUSED),
        ]

    def test_failing_callback_does_not_break_tick(self, engine, gap_sequence):
        def explode(duration):
            raise RuntimeError("listener bug")

        engine.set_gap_skipped_callback(explode)
        engine.occupy_slot(0, gap_sequence)
        engine.play()
        engine.tick(1.2)

        assert engine.tick(2.75).index == 3


class TestTransportControls:
    """Speed, seek, step, rewind and visibility."""

    def test_speed_change_does_not_jump(self, engine, fake_clock):
        engine.occupy_slot(0, make_sequence([float(i) for i in range(20)]))
        engine.play()
        engine.tick(2.0)

        fake_clock.set(2.5)
        before = engine.clock.target_data_time(2.5, engine.state().speed)
        engine.set_speed(4.0)
        after = engine.clock.target_data_time(2.5, engine.state().speed)

        assert after == pytest.approx(before)
        assert engine.clock.target_data_time(3.0, 4.0) == pytest.approx(before + 2.0)

    @pytest.mark.parametrize("speed", [0, -1.0, float("nan"), float("inf")])
    def test_invalid_speed_raises(self, engine, speed):
        with pytest.raises(ValueError):
            engine.set_speed(speed)

    def test_speed_while_paused_keeps_mode(self, engine):
        engine.set_speed(0.5)
        assert engine.state().speed == 0.5
        assert engine.mode == PlaybackMode.PAUSED

    @pytest.mark.parametrize("target,expected", [(-5, 0), (0, 0), (3, 3), (4, 4), (99, 4)])
    def test_seek_clamps(self, engine, gap_sequence, target, expected):
        engine.occupy_slot(0, gap_sequence)
        assert engine.seek(target) == expected
        assert engine.current_index == expected

    def test_seek_on_empty_engine(self, engine):
        assert engine.seek(7) == 0

    def test_seek_while_playing_reanchors(self, engine, fake_clock):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0, 3.0, 4.0]))
        engine.play()
        fake_clock.set(0.5)
        engine.seek(3)

        assert engine.clock.anchor.data_time == 3.0
        assert engine.clock.anchor.wall_time == 0.5
        assert engine.tick(0.6).index == 3

    def test_step_pauses_and_clamps(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.play()

        assert engine.step(1) == 1
        assert engine.mode == PlaybackMode.PAUSED
        assert engine.step(10) == 2
        assert engine.step(-10) == 0

    def test_rewind(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.play()
        engine.tick(1.5)

        assert engine.rewind()
        assert engine.current_index == 0
        assert engine.mode == PlaybackMode.PAUSED

    def test_toggle(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.toggle()
        assert engine.mode == PlaybackMode.PLAYING
        engine.toggle()
        assert engine.mode == PlaybackMode.PAUSED

    def test_hidden_view_pauses_without_catch_up(self, engine, fake_clock):
        engine.occupy_slot(0, make_sequence([float(i) for i in range(100)]))
        engine.play()
        engine.tick(1.0)

        engine.set_visibility(False)
        assert engine.mode == PlaybackMode.PAUSED

        fake_clock.set(60.0)
        engine.set_visibility(True)
        engine.play()
        assert engine.tick(60.5).index == 1


class TestSlotSynchronization:
    """Multiple slots sharing one cursor."""

    def test_shorter_slot_freezes_on_last_frame(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0, 3.0, 4.0]))
        engine.occupy_slot(1, make_sequence([10.0, 11.0]))
        engine.seek(4)

        assert engine.max_length == 5
        assert engine.current_frame(0).timestamp == 4.0
        assert engine.current_frame(1).timestamp == 11.0
        assert engine.current_frame(2) is None

    def test_anchor_is_lowest_occupied_slot(self, engine):
        engine.occupy_slot(2, make_sequence([0.0, 1.0]))
        assert engine.anchor_slot == 2

    def test_anchor_is_stable_when_lower_slot_fills(self, engine):
        engine.occupy_slot(1, make_sequence([0.0, 1.0]))
        engine.occupy_slot(0, make_sequence([5.0, 6.0]))
        assert engine.anchor_slot == 1

        engine.clear_slot(1)
        assert engine.anchor_slot == 0

    def test_clearing_non_anchor_keeps_index_and_speed(self, engine):
        engine.occupy_slot(0, make_sequence([float(i) for i in range(10)]))
        engine.occupy_slot(1, make_sequence([float(i) for i in range(6)]))
        engine.set_speed(2.0)
        engine.play()
        engine.tick(2.0)
        index = engine.current_index
        assert index == 4

        engine.clear_slot(1)
        assert engine.current_index == index
        assert engine.state().speed == 2.0
        assert engine.anchor_slot == 0
        assert engine.mode == PlaybackMode.PLAYING

    def test_longer_slot_plays_to_its_end(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.occupy_slot(1, make_sequence([0.0, 1.0, 2.0, 3.0, 4.0, 5.0]))
        engine.play()

        assert engine.tick(2.0).index == 2
        assert engine.mode == PlaybackMode.PLAYING

        # Slot 1 takes over timing from the cursor's current position.
        engine.tick(2.5)
        assert engine.tick(3.6).index == 3
        assert engine.tick(10.0).index == 5
        assert engine.mode == PlaybackMode.PAUSED

    def test_clearing_slot_clamps_cursor(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0]))
        engine.occupy_slot(1, make_sequence([float(i) for i in range(8)]))
        engine.seek(7)

        engine.clear_slot(1)
        assert engine.current_index == 1

    def test_clearing_last_slot_stops_playback(self, engine):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.play()
        engine.clear_slot(0)

        assert engine.mode == PlaybackMode.PAUSED
        assert engine.max_length == 0
        assert engine.current_index == 0

    def test_occupy_accepts_plain_frame_lists(self, engine):
        slot = engine.occupy_slot(0, [make_frame(2.0), make_frame(1.0)], "list")
        assert [f.timestamp for f in slot.sequence] == [1.0, 2.0]
        assert slot.display_name == "list"

    @pytest.mark.parametrize("index", [-1, 4, 10])
    def test_invalid_slot_index_raises(self, engine, index):
        with pytest.raises(ValueError):
            engine.occupy_slot(index, make_sequence([0.0]))

    def test_max_slots_from_config(self, engine_factory):
        engine = engine_factory(max_slots=2)
        with pytest.raises(ValueError):
            engine.occupy_slot(2, make_sequence([0.0]))


class TestLiveMode:
    """Live ingestion, warm-up and disconnect."""

    def test_warm_up_before_live(self, engine, fake_transport):
        stream = make_live_stream(engine, transport=fake_transport)
        engine.occupy_slot(0, stream)
        assert fake_transport.connect_calls == 1

        for i in range(5):
            fake_transport.emit(make_frame(float(i)))
        assert engine.tick(0.0).mode == PlaybackMode.PAUSED

        fake_transport.emit(make_frame(5.0))
        result = engine.tick(0.1)
        assert result.mode == PlaybackMode.LIVE
        assert result.index == 5

    def test_live_follows_newest_frame(self, engine, fake_transport):
        engine.occupy_slot(0, make_live_stream(engine, transport=fake_transport))
        for i in range(10):
            fake_transport.emit(make_frame(float(i)))
        engine.tick(0.0)

        fake_transport.emit(make_frame(10.0))
        fake_transport.emit(make_frame(11.0))
        assert engine.tick(0.1).index == 11
        assert engine.current_frame(0).timestamp == 11.0

    def test_ingestion_never_moves_cursor(self, engine, fake_transport):
        engine.occupy_slot(0, make_live_stream(engine, transport=fake_transport))
        for i in range(20):
            fake_transport.emit(make_frame(float(i)))

        assert engine.current_index == 0
        assert engine.mode == PlaybackMode.PAUSED

    def test_play_is_blocked_while_streaming(self, engine, fake_transport):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.occupy_slot(1, make_live_stream(engine, transport=fake_transport))
        assert engine.play() is False

    def test_live_from_playing(self, engine, fake_transport):
        engine.occupy_slot(0, make_sequence([float(i) for i in range(50)]))
        engine.play()
        engine.tick(1.0)

        engine.occupy_slot(1, make_live_stream(engine, transport=fake_transport))
        for i in range(6):
            fake_transport.emit(make_frame(100.0 + i))
        result = engine.tick(1.1)

        assert result.mode == PlaybackMode.LIVE
        assert result.index == 49

    def test_pause_and_step_ignored_in_live(self, engine, fake_transport):
        engine.occupy_slot(0, make_live_stream(engine, transport=fake_transport))
        for i in range(6):
            fake_transport.emit(make_frame(float(i)))
        engine.tick(0.0)

        assert engine.pause() is False
        assert engine.step(-1) == 5
        assert engine.mode == PlaybackMode.LIVE

    def test_disconnect_keeps_buffer_and_leaves_live(self, engine, fake_transport):
        engine.occupy_slot(0, make_live_stream(engine, transport=fake_transport))
        for i in range(8):
            fake_transport.emit(make_frame(float(i)))
        engine.tick(0.0)

        assert engine.disconnect_slot(0)
        assert fake_transport.disconnect_calls == 1
        assert engine.mode == PlaybackMode.PAUSED

        fake_transport.emit(make_frame(99.0))
        slot = engine.slot(0)
        assert len(slot) == 8
        assert not slot.is_streaming
        assert engine.tick(1.0).mode == PlaybackMode.PAUSED

        # The buffered tail can now be replayed.
        assert engine.play()

    def test_disconnect_without_stream(self, engine):
        engine.occupy_slot(0, make_sequence([0.0]))
        assert engine.disconnect_slot(0) is False
        assert engine.disconnect_slot(1) is False

    def test_stream_error_is_advisory(self, engine, fake_transport):
        engine.occupy_slot(0, make_live_stream(engine, transport=fake_transport))
        fake_transport.fail("link down")

        slot = engine.slot(0)
        assert slot.stream_error == "link down"
        assert slot.is_streaming
        fake_transport.emit(make_frame(1.0))
        assert len(slot) == 1

    def test_replacing_stream_closes_previous(self, engine):
        first, second = FakeTransport(), FakeTransport()
        engine.occupy_slot(0, make_live_stream(engine, "a", first))
        engine.occupy_slot(0, make_live_stream(engine, "b", second))

        assert first.disconnect_calls == 1
        assert second.connect_calls == 1

    def test_live_capacity_from_config(self, engine_factory, fake_transport):
        engine = engine_factory(live_capacity=10)
        engine.occupy_slot(0, make_live_stream(engine, transport=fake_transport))
        for i in range(25):
            fake_transport.emit(make_frame(float(i)))

        assert engine.max_length == 10
        assert engine.current_frame(0).timestamp == 15.0


class TestResetAndSnapshot:

    def test_reset_clears_everything(self, engine, fake_transport):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]))
        engine.occupy_slot(1, make_live_stream(engine, transport=fake_transport))
        for i in range(6):
            fake_transport.emit(make_frame(float(i)))
        engine.tick(0.0)
        assert engine.mode == PlaybackMode.LIVE

        engine.reset()

        assert engine.mode == PlaybackMode.PAUSED
        assert engine.current_index == 0
        assert engine.max_length == 0
        assert all(slot is None for slot in engine.synchronizer.slots)
        assert fake_transport.disconnect_calls == 1

    def test_snapshot(self, engine, fake_transport):
        engine.occupy_slot(0, make_sequence([0.0, 1.0, 2.0]), "recorded")
        engine.occupy_slot(2, make_live_stream(engine, "stream", fake_transport))
        fake_transport.emit(make_frame(5.0), raw='{"ts": 5}')
        engine.seek(1)

        snapshot = engine.snapshot()
        assert snapshot["mode"] == "paused"
        assert snapshot["current_index"] == 1
        assert snapshot["max_length"] == 3
        assert snapshot["anchor_slot"] == 0
        assert len(snapshot["slots"]) == 4
        assert snapshot["slots"][0]["name"] == "recorded"
        assert snapshot["slots"][0]["timestamp"] == 1.0
        assert snapshot["slots"][1] is None
        assert snapshot["slots"][2]["live"] is True
        assert snapshot["slots"][2]["streaming"] is True
        assert snapshot["slots"][2]["latest_raw"] == '{"ts": 5}'

    def test_state_is_a_copy(self, engine):
        state = engine.state()
        state.current_index = 42
        assert engine.current_index == 0
