"""
Color Transfer Pipeline - Command line front end
Reads images, runs the enhanced Reinhard transfer and writes the results
"""

import argparse
import json
import os
from pathlib import Path

import cv2
from tqdm import tqdm

from color_spaces import COLOR_SPACES
from color_statistics import SourceProfile
from color_transfer import ColorTransfer, TransferSettings
from evaluation_metrics import TransferEvaluator

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff'}

# Settings shown side by side by --compare
COMPARE_SETTINGS = [
    ('Reinhard (no correlation)', {'cross_covariance_limit': 0.0, 'iterations': 1}),
    ('Limit 0.5, 1 pass', {'cross_covariance_limit': 0.5, 'iterations': 1}),
    ('Limit 0.5, 2 passes', {'cross_covariance_limit': 0.5, 'iterations': 2}),
    ('Full match, 2 passes', {'cross_covariance_limit': 1.0, 'iterations': 2}),
]


def load_image(path):
    """Load a BGR uint8 image"""
    image = cv2.imread(os.path.normpath(str(path)), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError(f"Cannot read image: {path}")
    return image


def save_image(image, path):
    """Write a BGR uint8 image, creating the parent directory"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), image):
        raise ValueError(f"Cannot write image: {path}")
    return path


def list_images(directory):
    """Image files in a directory, sorted by name"""
    directory = Path(directory)
    return sorted(f for f in directory.iterdir()
                  if f.is_file() and f.suffix.lower() in IMAGE_EXTENSIONS)


def build_settings(args):
    """Map parsed command line arguments onto TransferSettings"""
    return TransferSettings(
        cross_covariance_limit=args.limit,
        keep_original_shading=not args.match_shading,
        scale_rather_than_clip=not args.clip,
        iterations=args.iterations,
        color_space=args.color_space,
    ).validate()


def process_image(transfer, target_path, output_path, profile,
                  source=None, evaluator=None):
    """
    Recolor one target file

    Args:
        transfer: ColorTransfer
        target_path: Target image path
        output_path: Where to write the result
        profile: SourceProfile of the source image
        source: Source image, required for evaluation
        evaluator: Optional TransferEvaluator

    Returns:
        result: BGR image
    """
    target = load_image(target_path)
    result = transfer.transfer_from_profile(target, profile)
    save_image(result, output_path)

    if evaluator is not None and source is not None:
        evaluator.evaluate(target, result, source, verbose=transfer.verbose)

    return result


def process_directory(transfer, target_dir, output_dir, profile,
                      source=None, evaluator=None):
    """
    Recolor every image in target_dir into output_dir

    Returns:
        (success, failed): lists of file names and (name, error) pairs
    """
    target_files = list_images(target_dir)
    if not target_files:
        raise ValueError(f"No images found in {target_dir}")

    success = []
    failed = []

    for target_path in tqdm(target_files, desc="Transferring colors"):
        output_path = Path(output_dir) / target_path.name
        try:
            process_image(transfer, target_path, output_path, profile, source, evaluator)
            success.append(target_path.name)
        except Exception as e:
            print(f"\n❌ Error processing {target_path.name}: {e}")
            failed.append((target_path.name, str(e)))

    print(f"\n✓ Successfully processed: {len(success)}/{len(target_files)}")
    if failed:
        print(f"\n❌ Failed ({len(failed)}):")
        for name, error in failed:
            print(f"  - {name}: {error}")

    return success, failed


def compare_settings(target, source, output_dir, settings=None):
    """
    Run several settings on one image pair and save a comparison grid

    Only the limit and the number of passes vary; every other option comes
    from settings.

    Returns:
        results: Dictionary of title -> BGR image
    """
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    os.makedirs(output_dir, exist_ok=True)

    results = {'Target': target, 'Source': source}
    for title, options in COMPARE_SETTINGS:
        print(f"Processing: {title}...")
        transfer = ColorTransfer(settings, **options)
        results[title] = transfer.transfer(target, source)

    fig, axes = plt.subplots(2, 3, figsize=(15, 9))
    axes = axes.flatten()

    for ax, (title, image) in zip(axes, results.items()):
        ax.imshow(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        ax.set_title(title, fontsize=12, fontweight='bold')
        ax.axis('off')

    for ax in axes[len(results):]:
        ax.axis('off')

    plt.tight_layout()

    color_space = transfer.settings.color_space
    comparison_path = os.path.join(output_dir, f"comparison_{color_space}.png")
    plt.savefig(comparison_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"\nComparison saved to: {comparison_path}")

    for title, image in results.items():
        safe_name = title.replace(' ', '_').replace(',', '').replace('(', '').replace(')', '').replace('.', '')
        cv2.imwrite(os.path.join(output_dir, f"{safe_name}.jpg"), image)

    return results


def build_parser():
    parser = argparse.ArgumentParser(
        description='Color transfer between images - enhanced Reinhard method'
    )

    parser.add_argument('--source', '-s',
                        help='Source image providing the color scheme')
    parser.add_argument('--profile', '-p',
                        help='Saved source profile (JSON) to use instead of --source')
    parser.add_argument('--target', '-t', required=True,
                        help='Target image or directory of images to recolor')
    parser.add_argument('--output', '-o',
                        help='Output image path (or directory when --target is a directory)')
    parser.add_argument('--limit', '-l', type=float, default=0.5,
                        help='Cross-covariance limit 0-1 (default: 0.5, 0 disables)')
    parser.add_argument('--iterations', '-n', type=int, default=2,
                        help='Number of passes (default: 2)')
    parser.add_argument('--color-space', '-c', choices=sorted(COLOR_SPACES), default='lab',
                        help='Working color space (default: lab)')
    parser.add_argument('--match-shading', action='store_true',
                        help="Match the source's shading instead of keeping the target's")
    parser.add_argument('--clip', action='store_true',
                        help='Clip out-of-range values instead of rescaling them')
    parser.add_argument('--save-profile',
                        help='Save the source profile to this JSON file')
    parser.add_argument('--evaluate', '-e', action='store_true',
                        help='Print statistics-match and shading metrics')
    parser.add_argument('--eval-output', type=str,
                        help='Save evaluation metrics to this JSON file')
    parser.add_argument('--compare', metavar='DIR',
                        help='Save a comparison of several settings to DIR (single image only)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Print per-pass diagnostics')
    return parser


def main(argv=None):
    """Main CLI interface"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.source and not args.profile:
        parser.error("one of --source or --profile is required")
    if not args.output and not args.compare:
        parser.error("--output is required unless --compare is used")

    try:
        settings = build_settings(args)
    except ValueError as e:
        parser.error(str(e))

    target_is_dir = os.path.isdir(args.target)
    source = load_image(args.source) if args.source else None

    if args.compare:
        if target_is_dir or source is None:
            parser.error("--compare needs a single --target image and a --source image")
        compare_settings(load_image(args.target), source, args.compare, settings)
        if not args.output:
            return 0

    transfer = ColorTransfer(settings, verbose=args.verbose)

    print(f"\n{'='*70}")
    print("COLOR TRANSFER")
    print(f"{'='*70}")
    print(f"Settings: {json.dumps(settings.to_dict())}")

    if args.profile:
        profile = SourceProfile.load(args.profile)
        print(f"Source profile: {args.profile}")
    else:
        profile = transfer.prepare_source(source)
        print(f"Source image: {args.source}")

    if args.verbose:
        profile.print_statistics()

    if args.save_profile:
        profile.save(args.save_profile)
        print(f"Saved profile to {args.save_profile}")

    evaluator = None
    if args.evaluate or args.eval_output:
        if source is None:
            print("Warning: evaluation needs --source, skipping")
        else:
            evaluator = TransferEvaluator(settings.color_space)

    if target_is_dir:
        _, failed = process_directory(transfer, args.target, args.output, profile, source, evaluator)
    else:
        process_image(transfer, args.target, args.output, profile, source, evaluator)
        failed = []
        print(f"Saved to: {args.output}")

    if evaluator is not None and evaluator.history:
        if args.evaluate:
            if target_is_dir:
                summary = evaluator.get_summary()
                for key, value in summary.items():
                    if key.endswith('_mean'):
                        print(f"{key}: {value:.4f}")
            elif not args.verbose:
                evaluator.print_metrics(evaluator.history[-1])
        if args.eval_output:
            evaluator.save_metrics(args.eval_output)

    print(f"{'='*70}\n")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
