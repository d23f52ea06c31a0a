import io

import numpy as np
import pytest
from PIL import Image

from dither_studio.buffers import PixelBuffer
from dither_studio.errors import InvalidDimensions
from dither_studio.params import Algorithm
from dither_studio.processing.animation import (
    DEFAULT_FRAME_DURATION,
    AnimationFrame,
    encode_gif,
    frame_duration,
    load_frames,
    process_animation,
)


def _gif_bytes(levels=(30, 128, 220), durations=(40, 80, 120), size=(8, 6)):
    frames = [Image.new("RGB", size, color=(level, level, level)) for level in levels]
    buffer = io.BytesIO()
    frames[0].save(
        buffer,
        "GIF",
        save_all=True,
        append_images=frames[1:],
        duration=list(durations),
        loop=0,
    )
    return buffer.getvalue()


def test_load_frames_keeps_every_frame_and_its_delay():
    frames = load_frames(_gif_bytes())

    assert [frame.duration for frame in frames] == [40, 80, 120]
    assert [frame.pixels.size for frame in frames] == [(8, 6)] * 3
    assert frames[1].pixels.data[0, 0].tolist() == [128, 128, 128, 255]


def test_still_images_load_as_a_single_frame():
    buffer = io.BytesIO()
    Image.new("RGB", (5, 4), color=(1, 2, 3)).save(buffer, "PNG")

    frames = load_frames(buffer.getvalue())

    assert len(frames) == 1
    assert frames[0].duration == DEFAULT_FRAME_DURATION


@pytest.mark.parametrize("info", [{}, {"duration": 0}, {"duration": None}, {"duration": -20}])
def test_missing_delays_fall_back_to_the_default(info):
    assert frame_duration(info) == DEFAULT_FRAME_DURATION


def test_load_frames_rejects_garbage():
    with pytest.raises(InvalidDimensions):
        load_frames(b"not an animation")


def test_process_animation_dithers_each_frame_and_keeps_timing():
    frames = load_frames(_gif_bytes())

    processed, warnings = process_animation(frames, Algorithm.FLOYD_STEINBERG)

    assert warnings == []
    assert [frame.duration for frame in processed] == [40, 80, 120]
    for frame in processed:
        assert set(np.unique(frame.pixels.data[..., :3]).tolist()) <= {0, 255}


def test_process_animation_requires_matching_frame_sizes():
    frames = [
        AnimationFrame(PixelBuffer.blank(4, 4)),
        AnimationFrame(PixelBuffer.blank(5, 4)),
    ]

    with pytest.raises(InvalidDimensions):
        process_animation(frames, Algorithm.ORDERED)


def test_process_animation_requires_frames():
    with pytest.raises(InvalidDimensions):
        process_animation([], Algorithm.ORDERED)


def test_encode_gif_writes_frames_with_their_durations():
    frames = [
        AnimationFrame(PixelBuffer.blank(6, 6, (0, 0, 0, 255)), 50),
        AnimationFrame(PixelBuffer.blank(6, 6, (255, 255, 255, 255)), 70),
    ]

    decoded = load_frames(encode_gif(frames))

    assert [frame.duration for frame in decoded] == [50, 70]
    assert decoded[0].pixels.data[0, 0, :3].tolist() == [0, 0, 0]
    assert decoded[1].pixels.data[0, 0, :3].tolist() == [255, 255, 255]
