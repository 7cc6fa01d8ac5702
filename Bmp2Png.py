# Converts BMP images pulled out of NScripter archives to PNG.
# Alpha masked sprites (":a;" in scripts) store the colour on the left half and an
# inverted mask on the right half; --alpha folds them into a single RGBA image.
import argparse
import os

from PIL import Image
import numpy as np


def split_alpha(image):
    width, height = image.size
    if width % 2:
        raise ValueError(f"Alpha masked image must have an even width, got {width}")

    half = width // 2
    color = np.array(image.convert('RGB'))[:, :half, :]
    mask = np.array(image.convert('L'))[:, half:]
    alpha = 255 - mask  # Mask is white where transparent
    return Image.fromarray(np.dstack((color, alpha)))


def convert_file(input_file, output_file, alpha=False):
    with Image.open(input_file) as img:
        if alpha:
            image = split_alpha(img)
        elif img.mode in ('RGB', 'RGBA', 'L', 'P'):
            image = img.copy()
        else:
            image = img.convert('RGB')
    image.save(output_file, 'PNG')
    return image.size


def process_directory(input_dir, output_dir, alpha=False):
    if not os.path.exists(output_dir):
        os.makedirs(output_dir)

    for filename in sorted(os.listdir(input_dir)):
        if filename.lower().endswith('.bmp'):
            input_file = os.path.join(input_dir, filename)
            output_file = os.path.join(output_dir, os.path.splitext(filename)[0] + '.png')

            try:
                width, height = convert_file(input_file, output_file, alpha)
                print(f"Converted {filename} to {output_file} ({width}x{height})")
            except (OSError, ValueError) as e:
                print(f"Error processing {filename}: {e}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Convert BMP images to PNG")
    parser.add_argument("input_dir", help="Input directory containing BMP files")
    parser.add_argument("output_dir", help="Output directory for PNG files")
    parser.add_argument("--alpha", action="store_true", help="Treat images as side-by-side alpha masked sprites")
    args = parser.parse_args()

    process_directory(args.input_dir, args.output_dir, args.alpha)
