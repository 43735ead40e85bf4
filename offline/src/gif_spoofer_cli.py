import argparse
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from PIL import Image

from gif_spoofer import GifConfig, encode_image, load_image, parse_max_pixels, read_gif

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp"})
MAX_FILES_WITHOUT_CONFIRM = 20
# Encoding runs in pure Python; a photo with many distinct colours takes
# roughly a minute per million pixels.
DEFAULT_MAX_PIXELS = "1000000"


def parse_arguments(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Convert images into minimal single-frame GIF files that chat clients "
            "and viewers display without transparency."
        )
    )
    parser.add_argument(
        "inputs",
        type=Path,
        nargs="+",
        help="Image files to convert.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output GIF path (only with a single input; defaults to the input name with .gif).",
    )
    parser.add_argument(
        "--max-pixels",
        type=str,
        default=DEFAULT_MAX_PIXELS,
        help=(
            f"Refuse images with more pixels than this, or 'none' (default: {DEFAULT_MAX_PIXELS}). "
            "Photos with many colours take about a minute per million pixels."
        ),
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Decode each written GIF and check its dimensions and pixel count.",
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Skip confirmation prompt for large batches.",
    )
    return parser.parse_args(argv)


def resolve_unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    stem = path.stem
    suffix = path.suffix
    index = 1
    while True:
        candidate = path.with_name(f"{stem}-{index}{suffix}")
        if not candidate.exists():
            return candidate
        index += 1


def validate_inputs(inputs: Sequence[Path]) -> List[Path]:
    for path in inputs:
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")
        if path.suffix.lower() not in IMAGE_EXTENSIONS:
            raise ValueError(
                f"Unsupported file type: {path.name}. Supported extensions: "
                f"{', '.join(sorted(IMAGE_EXTENSIONS))}"
            )
    return list(inputs)


def plan_outputs(inputs: Sequence[Path], output: Optional[Path]) -> List[Path]:
    if output is not None:
        if len(inputs) != 1:
            raise ValueError("--output can only be used with a single input file.")
        return [output]
    return [path.with_suffix(".gif") for path in inputs]


def convert_file(input_path: Path, output_path: Path, config: GifConfig) -> Path:
    image = load_image(input_path, config.max_pixels)
    gif_data = encode_image(image, config)

    target_path = resolve_unique_path(output_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    target_path.write_bytes(gif_data)
    return target_path


def verify_gif(path: Path, expected_size: tuple[int, int]) -> None:
    decoded = read_gif(path.read_bytes())
    if (decoded.width, decoded.height) != expected_size:
        raise ValueError(
            f"Verification failed for {path}: size {decoded.width}x{decoded.height}, "
            f"expected {expected_size[0]}x{expected_size[1]}"
        )
    if len(decoded.indices) != expected_size[0] * expected_size[1]:
        raise ValueError(f"Verification failed for {path}: pixel data is truncated")
    if decoded.transparency_flag:
        raise ValueError(f"Verification failed for {path}: transparency flag is set")


def main(argv: Iterable[str]) -> int:
    try:
        args = parse_arguments(argv)
        inputs = validate_inputs(args.inputs)
        outputs = plan_outputs(inputs, args.output)
        config = GifConfig(max_pixels=parse_max_pixels(args.max_pixels))

        if len(inputs) > MAX_FILES_WITHOUT_CONFIRM and not args.yes:
            print(f"This will convert {len(inputs)} files.")
            response = input("Continue? [y/N] ").strip().lower()
            if response not in ("y", "yes"):
                print("Aborted.")
                return 0

        for input_path, output_path in zip(inputs, outputs):
            final_output = convert_file(input_path, output_path, config)
            if final_output != output_path:
                print(
                    "Existing file detected. Saved new GIF as"
                    f" {final_output} instead."
                )
            if args.verify:
                with Image.open(input_path) as source:
                    verify_gif(final_output, source.size)
            print(f"Converted {input_path} to {final_output}")
        return 0
    except FileNotFoundError as not_found_err:
        print(f"Error: {not_found_err}", file=sys.stderr)
    except ValueError as value_err:
        print(f"Error: {value_err}", file=sys.stderr)
    except OSError as os_err:
        print(f"Error: could not read image: {os_err}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
