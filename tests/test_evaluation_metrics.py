import json
import math

import numpy as np
import pytest

from color_transfer import ColorTransfer
from evaluation_metrics import TransferEvaluator


def test_identical_images_score_perfect_shading(target_image):
    metrics = TransferEvaluator().evaluate_shading_preservation(target_image, target_image.copy())
    assert metrics['SSIM'] == pytest.approx(1.0)


def test_metric_keys(target_image, source_image):
    result = ColorTransfer().transfer(target_image, source_image)
    metrics = TransferEvaluator('lalphabeta').evaluate(target_image, result, source_image)
    for name in ('l', 'alpha', 'beta'):
        assert f'Mean_Diff_{name}' in metrics
        assert f'Std_Diff_{name}' in metrics
        assert f'EMD_{name}' in metrics
    assert {'Result_Correlation', 'Source_Correlation', 'Correlation_Diff', 'SSIM'} <= set(metrics)


def test_transfer_brings_chroma_close_to_source(target_image, source_image):
    evaluator = TransferEvaluator()
    before = evaluator.evaluate_statistics_match(target_image, source_image)
    result = ColorTransfer(cross_covariance_limit=0.0, iterations=1).transfer(target_image, source_image)
    after = evaluator.evaluate_statistics_match(result, source_image)

    for name in ('a', 'b'):
        assert after[f'Mean_Diff_{name}'] < 1.5
        assert after[f'Mean_Diff_{name}'] < before[f'Mean_Diff_{name}']


def test_shape_mismatch_is_rejected(target_image, source_image):
    with pytest.raises(ValueError, match='shape'):
        TransferEvaluator().evaluate_shading_preservation(target_image, source_image)


def test_tiny_image_has_no_ssim():
    tiny = np.full((2, 2, 3), 100, dtype=np.uint8)
    metrics = TransferEvaluator().evaluate_shading_preservation(tiny, tiny)
    assert math.isnan(metrics['SSIM'])


def test_history_summary_and_save(target_image, source_image, tmp_path):
    evaluator = TransferEvaluator()
    for limit in (0.0, 1.0):
        result = ColorTransfer(cross_covariance_limit=limit).transfer(target_image, source_image)
        evaluator.evaluate(target_image, result, source_image)

    assert len(evaluator.history) == 2
    summary = evaluator.get_summary()
    for suffix in ('mean', 'std', 'min', 'max'):
        assert f'SSIM_{suffix}' in summary
    assert summary['SSIM_min'] <= summary['SSIM_max']

    path = tmp_path / 'metrics.json'
    evaluator.save_metrics(str(path))
    with open(path) as f:
        saved = json.load(f)
    assert saved['color_space'] == 'lab'
    assert len(saved['evaluations']) == 2
    assert saved['evaluations'][0]['SSIM'] == pytest.approx(evaluator.history[0]['SSIM'])
    assert saved['summary']['SSIM_mean'] == pytest.approx(summary['SSIM_mean'])


def test_empty_summary():
    assert TransferEvaluator().get_summary() == {}


def test_verbose_prints_report(target_image, source_image, capsys):
    TransferEvaluator().evaluate(target_image, target_image, source_image, verbose=True)
    out = capsys.readouterr().out
    assert 'COLOR TRANSFER EVALUATION (lab space)' in out
    assert 'SSIM vs target' in out


def test_summary_ignores_missing_ssim(target_image, source_image):
    evaluator = TransferEvaluator()
    tiny = np.full((2, 2, 3), 100, dtype=np.uint8)
    evaluator.evaluate(tiny, tiny, tiny)
    evaluator.evaluate(target_image, target_image, source_image)

    summary = evaluator.get_summary()
    assert summary['SSIM_mean'] == pytest.approx(1.0)
    assert summary['SSIM_min'] == summary['SSIM_max']
    assert not any(math.isnan(v) for v in summary.values())
