"""
Evaluation Metrics for Color Transfer Results

Two groups of metrics:
1. Statistics Match - how closely the result's working-space statistics
   follow the source image
2. Shading Preservation - how much of the target's structure survived
"""

import json
import numpy as np
import cv2
from scipy.stats import wasserstein_distance
from skimage.metrics import structural_similarity as ssim
from typing import Dict

from color_spaces import get_color_space
from color_statistics import SourceProfile


class TransferEvaluator:
    """Compare a color transfer result against its source and target"""

    def __init__(self, color_space='lab'):
        """
        Args:
            color_space: Working space the statistics are measured in
        """
        self.color_space = get_color_space(color_space)
        self.history = []

    def evaluate(self,
                 target: np.ndarray,
                 result: np.ndarray,
                 source: np.ndarray,
                 verbose: bool = False) -> Dict[str, float]:
        """
        Evaluate one transfer

        Args:
            target: Original target image (BGR)
            result: Color-transferred output (BGR)
            source: Source image providing the colors (BGR)
            verbose: Print results

        Returns:
            Dictionary of metrics
        """
        metrics = {}
        metrics.update(self.evaluate_statistics_match(result, source))
        metrics.update(self.evaluate_shading_preservation(target, result))

        if verbose:
            self.print_metrics(metrics)

        self.history.append(metrics)
        return metrics

    def evaluate_statistics_match(self, result: np.ndarray, source: np.ndarray) -> Dict[str, float]:
        """
        Per-channel mean/std differences, cross-correlation and
        Wasserstein distance between result and source (working space)
        """
        result_working = self.color_space.to_working(result)
        source_working = self.color_space.to_working(source)

        result_profile = SourceProfile.from_working(result_working, self.color_space.name)
        source_profile = SourceProfile.from_working(source_working, self.color_space.name)

        metrics = {}
        for i, name in enumerate(self.color_space.channel_names):
            metrics[f'Mean_Diff_{name}'] = abs(result_profile.mean[i] - source_profile.mean[i])
            metrics[f'Std_Diff_{name}'] = abs(result_profile.std[i] - source_profile.std[i])
            metrics[f'EMD_{name}'] = float(wasserstein_distance(
                result_working[:, :, i].ravel(), source_working[:, :, i].ravel()
            ))

        metrics['Result_Correlation'] = result_profile.cross_correlation
        metrics['Source_Correlation'] = source_profile.cross_correlation
        metrics['Correlation_Diff'] = abs(result_profile.cross_correlation
                                          - source_profile.cross_correlation)
        return metrics

    def evaluate_shading_preservation(self, target: np.ndarray, result: np.ndarray) -> Dict[str, float]:
        """SSIM between target and result brightness (1 = shading untouched)"""
        if target.shape != result.shape:
            raise ValueError(f"Target and result differ in shape: {target.shape} vs {result.shape}")

        target_gray = cv2.cvtColor(target, cv2.COLOR_BGR2GRAY)
        result_gray = cv2.cvtColor(result, cv2.COLOR_BGR2GRAY)

        # SSIM needs a window of at least 7 pixels
        win_size = min(7, *target_gray.shape)
        if win_size % 2 == 0:
            win_size -= 1
        if win_size < 3:
            return {'SSIM': float('nan')}

        return {'SSIM': float(ssim(target_gray, result_gray, data_range=255, win_size=win_size))}

    def print_metrics(self, metrics: Dict[str, float]):
        """Pretty print metrics"""
        print("\n" + "="*60)
        print(f"COLOR TRANSFER EVALUATION ({self.color_space.name} space)")
        print("="*60)

        print("\n--- STATISTICS MATCH (lower = better) ---")
        for name in self.color_space.channel_names:
            print(f"  {name}: mean diff {metrics.get(f'Mean_Diff_{name}', 0):.4f}, "
                  f"std diff {metrics.get(f'Std_Diff_{name}', 0):.4f}, "
                  f"EMD {metrics.get(f'EMD_{name}', 0):.4f}")
        print(f"Cross-correlation: result {metrics.get('Result_Correlation', 0):.4f}, "
              f"source {metrics.get('Source_Correlation', 0):.4f}")

        print("\n--- SHADING PRESERVATION ---")
        print(f"SSIM vs target: {metrics.get('SSIM', 0):.4f} (higher = better, max=1.0)")
        print("="*60 + "\n")

    def save_metrics(self, filepath: str):
        """
        Save the evaluation history and its summary to JSON

        Metrics are plain floats already; NaN (SSIM of a tiny image) is
        written as JSON NaN.
        """
        report = {
            'color_space': self.color_space.name,
            'summary': self.get_summary(),
            'evaluations': self.history,
        }
        with open(filepath, 'w') as f:
            json.dump(report, f, indent=2)
        print(f"Metrics saved to {filepath}")

    def get_summary(self) -> Dict[str, float]:
        """Mean / std / min / max of every metric across the history, ignoring NaN"""
        if not self.history:
            return {}

        keys = list(self.history[0])
        table = np.array([[m.get(key, np.nan) for key in keys] for m in self.history],
                         dtype=np.float64)

        summary = {}
        for key, column in zip(keys, table.T):
            column = column[~np.isnan(column)]
            if column.size == 0:
                continue
            summary[f'{key}_mean'] = float(column.mean())
            summary[f'{key}_std'] = float(column.std())
            summary[f'{key}_min'] = float(column.min())
            summary[f'{key}_max'] = float(column.max())

        return summary
