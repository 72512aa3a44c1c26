import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


def create_test_image(base_bgr, spread=25, width=64, height=48, seed=0):
    """Synthetic BGR image: a base color plus uniform per-channel noise"""
    rng = np.random.default_rng(seed)
    noise = rng.integers(-spread, spread + 1, size=(height, width, 3))
    img = np.asarray(base_bgr, dtype=np.int64) + noise
    return np.clip(img, 0, 255).astype(np.uint8)


def create_flat_image(bgr, width=32, height=24):
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :] = bgr
    return img


@pytest.fixture
def make_image():
    return create_test_image


@pytest.fixture
def source_image():
    # Warm, orange-ish scene
    return create_test_image([90, 120, 170], seed=1)


@pytest.fixture
def target_image():
    # Cool, blue-ish scene
    return create_test_image([150, 130, 100], seed=2, width=80, height=60)


@pytest.fixture
def gray_target():
    return create_flat_image([128, 128, 128])


@pytest.fixture
def red_source():
    # R=200, G=100, B=100
    return create_flat_image([100, 100, 200])
