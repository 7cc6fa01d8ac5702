# Lists or extracts NScripter SAR archives.
# --order writes the member order as JSON so PkSar.py can rebuild the archive byte for byte.
import argparse
import json
import os
import sys

import sar
import Bmp2Png


def member_path(output_dir, name):
    base = os.path.abspath(output_dir)
    path = os.path.abspath(os.path.join(base, *name.replace('/', '\\').split('\\')))
    if path == base or os.path.commonpath([base, path]) != base:
        raise ValueError(f"Member name escapes the output directory: {name!r}")
    return path


def list_archive(archive_path, encoding, options):
    with open(archive_path, 'rb') as f:
        table = sar.read_archive_table(f, options)

    for index, entry in enumerate(table.entries):
        name = entry.name.decode(encoding)
        print(f"#{index:04d} off=0x{table.data_region_start + entry.data_origin:08X} "
              f"size=0x{entry.data_size:08X} {name}")
    print(f"{len(table.entries)} files, data starts at 0x{table.data_region_start:08X}")
    return table


def write_order(order_file, names):
    with open(order_file, 'w', encoding='utf-8') as json_file:
        json.dump([{'name': name} for name in names], json_file, indent=2, ensure_ascii=False)
        json_file.write('\n')


def extract_archive(archive_path, output_dir, encoding=sar.DEFAULT_ENCODING, png=False, alpha=False,
                    order_file=None, options=None):
    os.makedirs(output_dir, exist_ok=True)
    names = []
    seen = set()

    with open(archive_path, 'rb') as f:
        table = sar.read_archive_table(f, options)

        for index, entry in enumerate(table.entries):
            name = entry.name.decode(encoding)
            if name in seen:
                print(f"Warning: duplicate member {name}, the later copy wins")
            names.append(name)
            seen.add(name)

            output_path = member_path(output_dir, name)
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            print(f"Extracting: {name}")
            sar.extract_one(entry, f, output_path, table.data_region_start, index)

            if png and name.lower().endswith('.bmp'):
                png_path = os.path.splitext(output_path)[0] + '.png'
                try:
                    Bmp2Png.convert_file(output_path, png_path, alpha)
                except (OSError, ValueError) as e:
                    print(f"Warning: kept {name} as BMP, conversion failed: {e}")
                else:
                    os.remove(output_path)

    if order_file:
        write_order(order_file, names)

    print(f"Extraction complete. Files saved to: {output_dir}")
    return table


def main(argv=None):
    parser = argparse.ArgumentParser(description='Extract files from an NScripter SAR archive.')
    parser.add_argument('archive', help='Input archive file')
    parser.add_argument('output_dir', nargs='?', default='.', help='Output directory')
    parser.add_argument('--list', action='store_true', help='Only list the archive members')
    parser.add_argument('--encoding', default=sar.DEFAULT_ENCODING, help='Encoding of member names (default: cp932)')
    parser.add_argument('--png', action='store_true', help='Convert BMP members to PNG')
    parser.add_argument('--alpha', action='store_true', help='With --png, fold side-by-side alpha masks into RGBA')
    parser.add_argument('--order', dest='order_file', help='Write the member order to this JSON file')
    parser.add_argument('--bare', action='store_true', help='Archive has no count/offset header')
    parser.add_argument('--count', type=int, help='Number of entries in a --bare archive')
    args = parser.parse_args(argv)

    if args.png and args.order_file:
        parser.error("--order records the archived names and cannot be combined with --png")

    options = {'header': not args.bare}
    if args.bare:
        if args.count is None:
            parser.error('--bare needs --count')
        options['entry_count'] = args.count

    try:
        if args.list:
            list_archive(args.archive, args.encoding, options)
        else:
            extract_archive(args.archive, args.output_dir, args.encoding, args.png, args.alpha,
                            args.order_file, options)
    except (sar.SarError, UnicodeDecodeError, ValueError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
