"""Tests for temporal binning of point events."""

import logging

import pytest

from geolapse.frames import DEFAULT_EPOCH, MAX_MAGNITUDE, FrameStoreHeader, TemporalBinner
from geolapse.projection import ViewBox, create_projection
from geolapse.sources import PointEvent

DAY = 86400
WORLD = ViewBox(-180.0, -90.0, 180.0, 90.0)


@pytest.fixture
def projection():
    """4x2 world raster, (0, 0) lands on pixel 6."""
    return create_projection("equirectangular", WORLD, 2)


@pytest.fixture
def binner():
    return TemporalBinner(epoch=DEFAULT_EPOCH, seconds_per_frame=DAY)


class TestFrameNumber:
    """Test timestamp -> frame number mapping."""

    def test_epoch_is_frame_zero(self, binner):
        assert binner.frame_number(DEFAULT_EPOCH) == 0

    def test_integer_division(self, binner):
        assert binner.frame_number(DEFAULT_EPOCH + DAY - 1) == 0
        assert binner.frame_number(DEFAULT_EPOCH + DAY) == 1
        assert binner.frame_number(DEFAULT_EPOCH + 10 * DAY + 5) == 10

    def test_before_epoch_rejected(self, binner):
        with pytest.raises(ValueError, match="before the epoch"):
            binner.frame_number(DEFAULT_EPOCH - 1)

    def test_invalid_seconds_per_frame(self):
        with pytest.raises(ValueError, match="seconds_per_frame"):
            TemporalBinner(seconds_per_frame=0)


class TestIngest:
    """Test projecting and binning event streams."""

    def test_two_hits_same_pixel_same_frame(self, binner, projection):
        events = [
            PointEvent(DEFAULT_EPOCH, 0.0, 0.0),
            PointEvent(DEFAULT_EPOCH + 10, 0.0, 0.0),
        ]
        stats = binner.ingest(events, projection)
        store = binner.to_frame_store()

        assert stats.events_seen == 2
        assert stats.events_binned == 2
        assert len(store) == 1
        assert store.frames[0].frame_number == 0
        assert store.frames[0].deltas == [(6, 2)]

    def test_out_of_view_event_dropped(self, binner, projection):
        events = [
            PointEvent(DEFAULT_EPOCH, 91.0, 0.0),
            PointEvent(DEFAULT_EPOCH, 0.0, 0.0),
        ]
        stats = binner.ingest(events, projection)
        store = binner.to_frame_store()

        assert stats.outside_view == 1
        assert stats.events_dropped == 1
        assert store.as_mapping() == {0: {6: 1}}

    def test_missing_coordinates_counted(self, binner, projection):
        events = [
            PointEvent(DEFAULT_EPOCH),
            PointEvent(DEFAULT_EPOCH, 0.0, None),
            PointEvent(DEFAULT_EPOCH, 0.0, 0.0),
        ]
        stats = binner.ingest(events, projection)

        assert stats.missing_coordinates == 2
        assert stats.events_binned == 1

    def test_gap_frames_are_emitted_empty(self, binner, projection):
        """Frames between the first and last active frame exist with no deltas."""
        events = [
            PointEvent(DEFAULT_EPOCH + 2 * DAY, 0.0, 0.0),
            PointEvent(DEFAULT_EPOCH + 5 * DAY, 45.0, -90.0),
        ]
        binner.ingest(events, projection)
        store = binner.to_frame_store()

        assert [f.frame_number for f in store] == [2, 3, 4, 5]
        assert store.frames[1].deltas == []
        assert store.frames[2].deltas == []
        assert store.first_frame == 2
        assert store.last_frame == 5

    def test_unsorted_input_accepted_by_default(self, binner, projection):
        events = [
            PointEvent(DEFAULT_EPOCH + DAY, 0.0, 0.0),
            PointEvent(DEFAULT_EPOCH, 0.0, 0.0),
        ]
        binner.ingest(events, projection)
        assert binner.to_frame_store().as_mapping() == {0: {6: 1}, 1: {6: 1}}

    def test_require_sorted_rejects_backwards_timestamp(self, projection):
        binner = TemporalBinner(seconds_per_frame=DAY, require_sorted=True)
        events = [
            PointEvent(DEFAULT_EPOCH + DAY, 0.0, 0.0),
            PointEvent(DEFAULT_EPOCH, 0.0, 0.0),
        ]
        with pytest.raises(ValueError, match="sorted"):
            binner.ingest(events, projection)

    def test_event_before_epoch_aborts(self, binner, projection):
        with pytest.raises(ValueError, match="before the epoch"):
            binner.ingest([PointEvent(DEFAULT_EPOCH - 100, 0.0, 0.0)], projection)

    def test_out_of_view_event_before_epoch_aborts(self, binner):
        """The epoch check does not depend on the event landing in the view."""
        projection = create_projection("equirectangular", ViewBox(0.0, 0.0, 10.0, 10.0), 10)
        events = [
            PointEvent(DEFAULT_EPOCH, 5.0, 5.0),
            PointEvent(DEFAULT_EPOCH - 100, 50.0, 50.0),
        ]
        with pytest.raises(ValueError, match="before the epoch"):
            binner.ingest(events, projection)

    def test_require_sorted_checks_out_of_view_events(self):
        binner = TemporalBinner(seconds_per_frame=DAY, require_sorted=True)
        projection = create_projection("equirectangular", ViewBox(0.0, 0.0, 10.0, 10.0), 10)
        events = [
            PointEvent(DEFAULT_EPOCH + 1000, 5.0, 5.0),
            PointEvent(DEFAULT_EPOCH + 10, 50.0, 50.0),
        ]
        with pytest.raises(ValueError, match="sorted"):
            binner.ingest(events, projection)

    def test_require_sorted_checks_events_without_coordinates(self, projection):
        binner = TemporalBinner(seconds_per_frame=DAY, require_sorted=True)
        events = [
            PointEvent(DEFAULT_EPOCH + 1000, 0.0, 0.0),
            PointEvent(DEFAULT_EPOCH + 10),
        ]
        with pytest.raises(ValueError, match="sorted"):
            binner.ingest(events, projection)

    def test_require_sorted_across_batches(self, projection):
        binner = TemporalBinner(seconds_per_frame=DAY, require_sorted=True)
        events = [
            PointEvent(DEFAULT_EPOCH + 1000, 0.0, 0.0),
            PointEvent(DEFAULT_EPOCH + 2000, 0.0, 0.0),
            PointEvent(DEFAULT_EPOCH + 10, 0.0, 0.0),
        ]
        with pytest.raises(ValueError, match="sorted"):
            binner.ingest(events, projection, batch_size=2)

    def test_require_sorted_accepts_equal_timestamps(self, projection):
        binner = TemporalBinner(seconds_per_frame=DAY, require_sorted=True)
        events = [PointEvent(DEFAULT_EPOCH + 5, 0.0, 0.0)] * 3
        stats = binner.ingest(events, projection, batch_size=2)
        assert stats.events_binned == 3


class TestBatching:
    """Test that batch boundaries do not change the binned result."""

    @pytest.fixture
    def events(self):
        coords = [(0.0, 0.0), (45.0, -135.0), (-45.0, 90.0), (91.0, 0.0), (None, None)]
        return [
            PointEvent(DEFAULT_EPOCH + (i * 7919) % (6 * DAY), *coords[i % len(coords)])
            for i in range(200)
        ]

    @pytest.mark.parametrize("batch_size", [1, 3, 64, 1000])
    def test_batch_size_does_not_change_result(self, events, projection, batch_size):
        reference = TemporalBinner(seconds_per_frame=DAY)
        reference_stats = reference.ingest(events, projection, batch_size=len(events))

        binner = TemporalBinner(seconds_per_frame=DAY)
        stats = binner.ingest(events, projection, batch_size=batch_size)

        assert stats == reference_stats
        assert binner.to_frame_store().as_mapping() == reference.to_frame_store().as_mapping()

    def test_batched_counts_match_single_adds(self, events, projection):
        binner = TemporalBinner(seconds_per_frame=DAY)
        binner.ingest(events, projection)

        expected = TemporalBinner(seconds_per_frame=DAY)
        for event in events:
            if event.latitude is None:
                continue
            pixel = projection.project(event.latitude, event.longitude)
            if pixel is not None:
                expected.add(event.timestamp, pixel)

        assert binner.to_frame_store().as_mapping() == expected.to_frame_store().as_mapping()

    def test_batch_counts_saturate(self, binner, projection):
        events = [PointEvent(DEFAULT_EPOCH, 0.0, 0.0)] * (MAX_MAGNITUDE + 10)
        binner.ingest(events, projection)
        assert binner.to_frame_store().frames[0].deltas == [(6, MAX_MAGNITUDE)]

    def test_invalid_batch_size(self, binner, projection):
        with pytest.raises(ValueError, match="batch_size"):
            binner.ingest([], projection, batch_size=0)

    def test_deltas_sorted_by_pixel(self, binner, projection):
        events = [
            PointEvent(DEFAULT_EPOCH, -45.0, 90.0),
            PointEvent(DEFAULT_EPOCH, 45.0, -135.0),
            PointEvent(DEFAULT_EPOCH, 0.0, 0.0),
        ]
        binner.ingest(events, projection)
        pixels = [pixel for pixel, _ in binner.to_frame_store().frames[0].deltas]
        assert pixels == sorted(pixels)

    def test_progress_logged(self, binner, projection, caplog):
        events = [PointEvent(DEFAULT_EPOCH, 0.0, 0.0)] * 4
        with caplog.at_level(logging.INFO, logger="geolapse.frames.binner"):
            binner.ingest(events, projection, progress_every=2)
        assert sum("Processed" in r.getMessage() for r in caplog.records) == 2


class TestSaturation:
    """Test per-pixel counts saturating instead of overflowing."""

    def test_count_saturates(self, binner):
        for _ in range(MAX_MAGNITUDE + 10):
            binner.add(DEFAULT_EPOCH, 3)
        store = binner.to_frame_store()
        assert store.frames[0].deltas == [(3, MAX_MAGNITUDE)]


class TestFrameStoreConversion:
    """Test materializing the frame store."""

    def test_empty_binner_gives_empty_store(self, binner):
        store = binner.to_frame_store()
        assert len(store) == 0
        assert store.first_frame is None

    def test_header_attached(self, binner):
        header = FrameStoreHeader(
            height=2, width=4, seconds_per_frame=DAY,
            left=-180.0, bottom=-90.0, right=180.0, top=90.0,
            projection="equirectangular", epoch=DEFAULT_EPOCH,
        )
        binner.add(DEFAULT_EPOCH, 0)
        store = binner.to_frame_store(header)
        assert store.header is header

    def test_counters(self, binner):
        binner.add(DEFAULT_EPOCH, 0)
        binner.add(DEFAULT_EPOCH, 1)
        binner.add(DEFAULT_EPOCH + 3 * DAY, 1)
        assert binner.num_frames == 4
        assert binner.num_deltas == 3

    def test_second_conversion_is_empty(self, binner):
        binner.add(DEFAULT_EPOCH, 0)
        binner.add(DEFAULT_EPOCH + 2 * DAY, 1)
        assert len(binner.to_frame_store()) == 3

        again = binner.to_frame_store()
        assert len(again) == 0
        assert binner.num_frames == 0
        assert binner.num_deltas == 0
