import argparse
import sys

import numpy as np
import qrcode
import trimesh
from qrcode.exceptions import DataOverflowError

from qr_mesh import MeshOptions, build

ENCODING_FAILED = "encoding failed"
SERIALIZATION_FAILED = "serialization failed"


class EncodingError(ValueError):
    """The payload does not fit in a QR code at the configured error correction"""


class SerializationError(IOError):
    """The mesh could not be turned into STL or written out"""


def _make_qr(data, border):
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=border
    )
    qr.add_data(data)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        # newer qrcode releases overflow with ValueError from the version check
        raise EncodingError(f"Cannot encode {len(data)} bytes as a QR code: {e}") from e
    return qr


def encode_matrix(data):
    """Encode bytes (or text) as a QR module matrix: True for black, no quiet zone"""
    qr = _make_qr(data, border=0)
    return [[bool(module) for module in row] for row in qr.get_matrix()]


def generate_qr_image(data, filename="qr.png"):
    qr = _make_qr(data, border=4)
    img = qr.make_image(fill_color="black", back_color="white")
    img.save(filename)
    print(f"[+] Saved QR code image to {filename}")
    return img


def qr_to_triangles(data, options=MeshOptions()):
    return build(encode_matrix(data), options)


def triangles_to_trimesh(tris):
    """Non-indexed mesh: every triangle keeps its own three vertices, in order"""
    vertices = np.array([tri.vertices for tri in tris], dtype=np.float64).reshape(-1, 3)
    faces = np.arange(len(vertices)).reshape(-1, 3)
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)


def stl_bytes(tris, ascii=False):
    try:
        data = triangles_to_trimesh(tris).export(file_type="stl_ascii" if ascii else "stl")
    except (ValueError, TypeError) as e:
        raise SerializationError(f"Failed to export STL: {e}") from e
    if isinstance(data, str):
        data = data.encode("ascii")
    return data


def save_stl(tris, file_obj, ascii=False):
    data = stl_bytes(tris, ascii=ascii)
    try:
        file_obj.write(data)
    except OSError as e:
        raise SerializationError(f"Failed to write STL: {e}") from e


def generate(input_bytes, base_height, base_size, pixel_size):
    """
    Narrow entry point for hosts that only understand bytes and strings.

    Returns the binary STL, or raises RuntimeError whose message is exactly
    "encoding failed" or "serialization failed".
    """
    options = MeshOptions(pixel_size=pixel_size, base_size=base_size, base_height=base_height)
    try:
        tris = qr_to_triangles(input_bytes, options)
    except EncodingError:
        raise RuntimeError(ENCODING_FAILED) from None
    try:
        return stl_bytes(tris)
    except SerializationError:
        raise RuntimeError(SERIALIZATION_FAILED) from None


def _positive(value):
    value = float(value)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return value


def _non_negative(value):
    value = float(value)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {value}")
    return value


def parse_arguments(argv=None):
    defaults = MeshOptions()
    parser = argparse.ArgumentParser(prog="qr-stl", description="Turn text into a 3D printable QR code STL")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("-i", "--input", help="File with the data to encode (default: stdin)")
    source.add_argument("-t", "--text", help="Text to encode")
    parser.add_argument("-o", "--output", required=True, help="Output STL path")
    parser.add_argument(
        "--pixel-size",
        type=_positive,
        default=defaults.pixel_size,
        help=f"Edge length of one QR pixel (default: {defaults.pixel_size})",
    )
    parser.add_argument(
        "--base-size",
        type=_non_negative,
        default=defaults.base_size,
        help=f"Width of the border around the code (default: {defaults.base_size})",
    )
    parser.add_argument(
        "--base-height",
        type=_non_negative,
        default=defaults.base_height,
        help=f"Height of the base the code sits on (default: {defaults.base_height})",
    )
    parser.add_argument("--ascii", action="store_true", help="Write ASCII STL instead of binary")
    parser.add_argument("--png", help="Also save a PNG image of the QR code")
    return parser.parse_args(argv)


def _read_input(args):
    if args.text is not None:
        return args.text.encode("utf-8")
    if args.input:
        with open(args.input, "rb") as f:
            return f.read()
    return sys.stdin.buffer.read()


def main(argv=None):
    args = parse_arguments(argv)
    options = MeshOptions(
        pixel_size=args.pixel_size,
        base_size=args.base_size,
        base_height=args.base_height,
    )
    data = _read_input(args)

    print("[+] Generating triangles...")
    try:
        tris = qr_to_triangles(data, options)
        if args.png:
            generate_qr_image(data, args.png)
        print(f"[+] Built {len(tris)} triangles")

        print("[+] Writing STL...")
        # serialize first so a failed export leaves the output file alone
        stl = stl_bytes(tris, ascii=args.ascii)
        with open(args.output, "wb") as f:
            f.write(stl)
    except (EncodingError, OSError) as e:
        # SerializationError is an OSError
        print(f"[-] {e}", file=sys.stderr)
        return 1

    print(f"[+] STL file saved as {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
