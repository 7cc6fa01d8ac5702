# Packs a directory into an NScripter SAR archive (arc.sar).
# Member names use backslashes as the engine expects; pass --order with the JSON written by
# ExSar.py --order to rebuild an archive with its original member order.
import argparse
import json
import os
import sys

import sar


def collect_names(input_dir):
    names = []
    for root, dirs, files in os.walk(input_dir):
        dirs.sort()
        for filename in sorted(files):
            rel_path = os.path.relpath(os.path.join(root, filename), input_dir)
            names.append(rel_path.replace(os.sep, '\\'))
    return names


def load_order(order_file):
    with open(order_file, 'r', encoding='utf-8') as json_file:
        order_data = json.load(json_file)
    return [entry['name'] for entry in order_data]


def load_files(input_dir, names, encoding):
    files = []
    for name in names:
        file_path = os.path.join(input_dir, *name.split('\\'))
        with open(file_path, 'rb') as f:
            data = f.read()
        files.append(sar.LogicalFile(name.encode(encoding), data))
    return files


def pack_directory(input_dir, output_file, order_file=None, encoding=sar.DEFAULT_ENCODING, header=True):
    names = load_order(order_file) if order_file else collect_names(input_dir)
    files = load_files(input_dir, names, encoding)

    with open(output_file, 'wb') as f:
        table = sar.pack(f, files, {'header': header})

    print(f"Archive '{output_file}' created successfully: {len(table.entries)} files, "
          f"{table.data_region_start + table.data_size} bytes.")
    if not header:
        print(f"Headerless archive, pass --bare --count {len(table.entries)} to extract it.")
    return table


def main(argv=None):
    parser = argparse.ArgumentParser(description='Pack files in a directory into an NScripter SAR archive.')
    parser.add_argument('input_dir', help='Input directory containing files to pack')
    parser.add_argument('output_file', help='Output archive file path')
    parser.add_argument('--order', dest='order_file', help='JSON file specifying the order of files to pack')
    parser.add_argument('--encoding', default=sar.DEFAULT_ENCODING, help='Encoding of member names (default: cp932)')
    parser.add_argument('--bare', action='store_true', help='Write the entry table without the count/offset header')
    args = parser.parse_args(argv)

    try:
        pack_directory(args.input_dir, args.output_file, args.order_file, args.encoding, not args.bare)
    except (sar.SarError, UnicodeEncodeError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
