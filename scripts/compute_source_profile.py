"""
Compute Source Profiles
Measures every image in a directory once and saves <name>_profile.json,
so the profiles can be applied later with `color-transfer --profile`
"""

import argparse
import os
import sys
from pathlib import Path

from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from color_spaces import COLOR_SPACES
from color_statistics import SourceProfile
from transfer_pipeline import list_images, load_image


def compute_profiles(images_dir, output_dir="Profiles", color_space='lab', overwrite=False):
    """
    Compute a profile for every image in images_dir

    Args:
        images_dir: Directory with source images
        output_dir: Where to save the JSON profiles
        color_space: Working color space
        overwrite: Recompute profiles that already exist

    Returns:
        (success, failed)
    """
    print("="*70)
    print(f"COMPUTING SOURCE PROFILES ({color_space} space)")
    print("="*70)

    if not os.path.isdir(images_dir):
        print(f"❌ Images directory not found: {images_dir}")
        return [], []

    image_paths = list_images(images_dir)
    if not image_paths:
        print(f"❌ No images found in {images_dir}")
        return [], []

    os.makedirs(output_dir, exist_ok=True)

    success = []
    failed = []
    skipped = 0

    for image_path in tqdm(image_paths, desc="Computing profiles"):
        profile_path = Path(output_dir) / f"{image_path.stem}_profile.json"
        if profile_path.exists() and not overwrite:
            skipped += 1
            continue

        try:
            profile = SourceProfile.from_image(load_image(image_path), color_space)
            profile.save(profile_path)
            success.append(image_path.name)
        except Exception as e:
            print(f"\n❌ Error processing {image_path.name}: {e}")
            failed.append((image_path.name, str(e)))

    print(f"\n{'='*70}")
    print("SUMMARY")
    print(f"{'='*70}")
    print(f"✓ Successfully processed: {len(success)}/{len(image_paths)}")
    if skipped:
        print(f"Skipped (already present): {skipped}")
    if failed:
        print(f"\n❌ Failed ({len(failed)}):")
        for name, error in failed:
            print(f"  - {name}: {error}")

    print(f"\nProfiles saved to: {output_dir}/*_profile.json")
    return success, failed


def main():
    parser = argparse.ArgumentParser(description='Compute color transfer source profiles')
    parser.add_argument('images_dir', help='Directory with source images')
    parser.add_argument('--output', '-o', default='Profiles',
                        help='Output directory (default: Profiles)')
    parser.add_argument('--color-space', '-c', choices=sorted(COLOR_SPACES), default='lab')
    parser.add_argument('--overwrite', action='store_true',
                        help='Recompute existing profiles')
    args = parser.parse_args()

    _, failed = compute_profiles(args.images_dir, args.output, args.color_space, args.overwrite)
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
