import sys
import argparse
import logging
from PySide6.QtWidgets import QApplication
from .main_window import MainWindow
from .compare_engine import DisplayOptions, compare_pixels
from .errors import ComparisonError
from .log_config import setup_logging
from .raster import load_image_file, rasterize_pair, save_png

logger = logging.getLogger(__name__)


def compare_files(first_path, second_path, options):
    """Compare two image files synchronously. Returns a ComparisonResult."""
    first = load_image_file(first_path)
    second = load_image_file(second_path)
    first_buf, second_buf = rasterize_pair(first.pixels, second.pixels)
    if (first.width, first.height) != (second.width, second.height):
        logger.warning("Image sizes differ (%dx%d vs %dx%d); pixels outside the smaller "
                       "image are compared against transparent black",
                       first.width, first.height, second.width, second.height)
    return compare_pixels(first_buf, second_buf, first_buf.width, first_buf.height, options)


def main():
    parser = argparse.ArgumentParser(description="Pixel-level Image Comparator")
    parser.add_argument("first", nargs="?", help="Path to the first image")
    parser.add_argument("second", nargs="?", help="Path to the second image")
    parser.add_argument("--hide-similarities", action="store_true", help="Do not paint matching pixels")
    parser.add_argument("--hide-differences", action="store_true", help="Do not paint differing pixels")
    parser.add_argument("--no-base-image", action="store_true", help="Paint the overlay fully opaque")
    parser.add_argument("-o", "--output", dest="output_file", type=str, help="Write the overlay PNG here (triggers headless mode)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose (DEBUG) logging")
    parser.add_argument("--log-file", type=str, help="Also write log messages to this file")

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    options = DisplayOptions(
        show_similarities=not args.hide_similarities,
        show_differences=not args.hide_differences,
        show_base_image=not args.no_base_image,
    )

    if args.output_file:
        # Headless mode
        if not args.first or not args.second:
            print("Error: Two input images are required for headless comparison")
            sys.exit(1)

        try:
            result = compare_files(args.first, args.second, options)
            save_png(result.overlay, args.output_file)
        except ComparisonError as e:
            print(f"Error comparing images: {e}")
            sys.exit(1)

        print(f"Similarity: {result.similarity_percent:.2f}%")
        print(f"Difference: {result.difference_percent:.2f}%")
        sys.exit(0)

    # GUI Mode
    app = QApplication(sys.argv)
    window = MainWindow(args.first, args.second, options)
    window.show()
    sys.exit(app.exec())

if __name__ == "__main__":
    main()
