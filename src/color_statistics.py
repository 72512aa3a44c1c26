"""
Color Statistics - Per-channel descriptors in the working color space
Mean / standard deviation, standardization and chromatic cross-correlation
"""

import json
import os
import numpy as np
from dataclasses import dataclass

from color_spaces import get_color_space

# Channels with a smaller spread are treated as having unit spread
MIN_STD = 1e-6


@dataclass(frozen=True)
class ChannelStatistics:
    """Mean and population standard deviation of each working-space channel"""
    mean: tuple
    std: tuple


def compute_channel_statistics(working):
    """
    Compute per-channel mean and standard deviation over every pixel

    Args:
        working: H x W x 3 working-space image

    Returns:
        ChannelStatistics
    """
    pixels = working.reshape(-1, 3)
    mean = pixels.mean(axis=0, dtype=np.float64)
    std = pixels.std(axis=0, dtype=np.float64)
    return ChannelStatistics(mean=tuple(float(m) for m in mean),
                             std=tuple(float(s) for s in std))


def safe_std(std):
    """Avoid division by zero for flat channels"""
    return 1.0 if std < MIN_STD else std


def standardize(channel, mean, std):
    """(x - mean) / std, with a flat channel only centered"""
    return ((channel - mean) / safe_std(std)).astype(np.float32)


def destandardize(channel, mean, std):
    """x * std + mean"""
    return (channel * std + mean).astype(np.float32)


def cross_correlation(channel1, channel2):
    """Mean cross product of two standardized channels"""
    return float(np.mean(channel1.astype(np.float64) * channel2))


@dataclass
class SourceProfile:
    """
    Everything the transfer loop needs to know about a source image

    A profile can be saved to JSON and reused for many targets.
    """
    color_space: str
    mean: tuple
    std: tuple
    cross_correlation: float
    width: int = 0
    height: int = 0

    @property
    def statistics(self):
        return ChannelStatistics(mean=tuple(self.mean), std=tuple(self.std))

    @classmethod
    def from_image(cls, bgr_image, color_space='lab'):
        """
        Measure a source image

        Args:
            bgr_image: Source BGR image (uint8)
            color_space: Color space name or ColorSpace instance

        Returns:
            SourceProfile
        """
        space = get_color_space(color_space)
        working = space.to_working(bgr_image)
        return cls.from_working(working, space.name)

    @classmethod
    def from_working(cls, working, color_space):
        stats = compute_channel_statistics(working)
        alpha = standardize(working[:, :, 1], stats.mean[1], stats.std[1])
        beta = standardize(working[:, :, 2], stats.mean[2], stats.std[2])

        return cls(color_space=color_space,
                   mean=stats.mean,
                   std=stats.std,
                   cross_correlation=cross_correlation(alpha, beta),
                   width=int(working.shape[1]),
                   height=int(working.shape[0]))

    def to_dict(self):
        return {
            'color_space': self.color_space,
            'width': self.width,
            'height': self.height,
            'mean_l': self.mean[0],
            'mean_alpha': self.mean[1],
            'mean_beta': self.mean[2],
            'std_l': self.std[0],
            'std_alpha': self.std[1],
            'std_beta': self.std[2],
            'cross_correlation': self.cross_correlation,
        }

    @classmethod
    def from_dict(cls, data):
        get_color_space(data['color_space'])
        return cls(color_space=data['color_space'],
                   mean=(float(data['mean_l']), float(data['mean_alpha']), float(data['mean_beta'])),
                   std=(float(data['std_l']), float(data['std_alpha']), float(data['std_beta'])),
                   cross_correlation=float(data['cross_correlation']),
                   width=int(data.get('width', 0)),
                   height=int(data.get('height', 0)))

    def save(self, path):
        """Save profile to JSON"""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        return path

    @classmethod
    def load(cls, path):
        """Load profile from JSON"""
        if not os.path.exists(path):
            raise FileNotFoundError(f"Profile file not found: {path}")
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))

    def print_statistics(self):
        """Pretty print the profile"""
        names = get_color_space(self.color_space).channel_names
        print(f"\n{'='*60}")
        print(f"SOURCE PROFILE ({self.color_space} space)")
        print(f"{'='*60}")
        print(f"Image size: {self.width}x{self.height}")
        print(f"\nChannel Means:")
        for name, value in zip(names, self.mean):
            print(f"  {name}: {value:.4f}")
        print(f"\nChannel Std Dev:")
        for name, value in zip(names, self.std):
            print(f"  {name}: {value:.4f}")
        print(f"\nChromatic cross-correlation: {self.cross_correlation:.4f}")
