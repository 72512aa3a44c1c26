"""
Color Transfer - Enhanced Reinhard et al. "Color Transfer between Images"
Matches mean, standard deviation and chromatic cross-correlation, iterating
with a progressively relaxed cross-correlation limit
"""

import numpy as np
from dataclasses import dataclass, asdict

from color_spaces import COLOR_SPACES, get_color_space, validate_display_image
from color_statistics import (
    MIN_STD, SourceProfile, compute_channel_statistics, standardize, destandardize,
)
from covariance_adjustment import CovarianceAdjuster
from gamut_rescale import rescale_to_gamut


@dataclass
class TransferSettings:
    """Processing options for a color transfer run"""

    # 0 disables correlation matching, 1 matches fully
    cross_covariance_limit: float = 0.5

    # Keep the target's shading (pure color transfer)
    keep_original_shading: bool = True

    # Rescale out-of-range values instead of clipping them
    scale_rather_than_clip: bool = True

    iterations: int = 2

    color_space: str = 'lab'

    def validate(self):
        """Raise ValueError on an unusable configuration"""
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, (int, np.integer)):
            raise ValueError(f"iterations must be an integer, got {self.iterations!r}")
        if self.iterations < 1:
            raise ValueError(f"iterations must be at least 1, got {self.iterations}")
        limit = self.cross_covariance_limit
        if (isinstance(limit, bool) or not isinstance(limit, (int, float, np.floating))
                or not 0.0 <= limit <= 1.0):
            raise ValueError(f"cross_covariance_limit must lie in [0, 1], got {limit!r}")
        if self.color_space not in COLOR_SPACES:
            raise ValueError(
                f"Unknown color space: {self.color_space!r} "
                f"(choose from {', '.join(COLOR_SPACES)})"
            )
        return self

    def to_dict(self):
        return asdict(self)


def effective_limits(limit, iterations):
    """Cross-correlation limit for each pass: limit * i / N for i = 1..N"""
    return [limit * i / iterations for i in range(1, iterations + 1)]


class ColorTransfer:
    """
    Color transfer between images with cross-correlation matching

    Usage:
        ct = ColorTransfer(TransferSettings(iterations=2))
        result = ct.transfer(target_bgr, source_bgr)
    """

    def __init__(self, settings=None, verbose=False, **overrides):
        """
        Initialize color transfer

        Args:
            settings: TransferSettings (defaults if None)
            verbose: Print per-pass diagnostics
            **overrides: Individual TransferSettings fields
        """
        if settings is None:
            settings = TransferSettings(**overrides)
        elif overrides:
            settings = TransferSettings(**{**settings.to_dict(), **overrides})

        self.settings = settings.validate()
        self.verbose = verbose
        self.color_space = get_color_space(settings.color_space)
        self.adjuster = CovarianceAdjuster(verbose=verbose)

    def prepare_source(self, source_bgr):
        """Measure the source image once"""
        return SourceProfile.from_image(source_bgr, self.color_space)

    def transfer(self, target_bgr, source_bgr):
        """
        Apply the colors of source_bgr to target_bgr

        Args:
            target_bgr: Image to recolor (BGR uint8)
            source_bgr: Image providing the color scheme (BGR uint8)

        Returns:
            result: BGR uint8 image, same size as target
        """
        return self.transfer_from_profile(target_bgr, self.prepare_source(source_bgr))

    def transfer_from_profile(self, target_bgr, profile):
        """
        Apply a previously measured source profile to target_bgr

        Args:
            target_bgr: Image to recolor (BGR uint8)
            profile: SourceProfile measured in the same color space

        Returns:
            result: BGR uint8 image
        """
        validate_display_image(target_bgr)
        if profile.color_space != self.color_space.name:
            raise ValueError(
                f"Profile was measured in {profile.color_space!r} space, "
                f"but the transfer uses {self.color_space.name!r}"
            )

        iterations = self.settings.iterations
        limits = effective_limits(self.settings.cross_covariance_limit, iterations)

        result = target_bgr
        for i, limit in enumerate(limits, 1):
            if self.verbose:
                print(f"Pass {i}/{iterations} (cross-covariance limit {limit:.3f})")
            result = self.transfer_pass(result, profile, limit)

        return result

    def transfer_pass(self, target_bgr, profile, limit):
        """One standardize / adjust / de-standardize / invert pass"""
        working = self.color_space.to_working(target_bgr)
        transferred = self.transfer_working(working, profile, limit)
        return self.color_space.from_working(transferred)

    def transfer_working(self, working, profile, limit):
        """
        Transfer statistics in working space

        Args:
            working: Target image in working space
            profile: SourceProfile
            limit: Effective cross-covariance limit for this pass

        Returns:
            New working-space image
        """
        target_stats = compute_channel_statistics(working)
        source_stats = profile.statistics

        alpha = standardize(working[:, :, 1], target_stats.mean[1], target_stats.std[1])
        beta = standardize(working[:, :, 2], target_stats.mean[2], target_stats.std[2])

        # Only a pair of unit-variance channels can be mixed
        if min(target_stats.std[1], target_stats.std[2]) >= MIN_STD:
            alpha, beta = self.adjuster.adjust_to_correlation(
                alpha, beta, profile.cross_correlation, limit
            )
        elif self.verbose:
            print("  flat chromatic channel, skipping cross-correlation matching")

        result = np.empty_like(working, dtype=np.float32)
        result[:, :, 1] = destandardize(alpha, source_stats.mean[1], source_stats.std[1])
        result[:, :, 2] = destandardize(beta, source_stats.mean[2], source_stats.std[2])

        if self.settings.keep_original_shading:
            result[:, :, 0] = working[:, :, 0]
        else:
            lightness = standardize(working[:, :, 0], target_stats.mean[0], target_stats.std[0])
            result[:, :, 0] = destandardize(lightness, source_stats.mean[0], source_stats.std[0])

        if self.settings.scale_rather_than_clip:
            result = rescale_to_gamut(result, self.color_space.gamut, verbose=self.verbose)

        return result


def transfer_color(target_bgr, source_bgr, **settings):
    """Convenience wrapper: ColorTransfer(**settings).transfer(target, source)"""
    return ColorTransfer(**settings).transfer(target_bgr, source_bgr)
