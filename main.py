import os
import sys
import logging

# 1. CONFIGURATION (Before imports to ensure they take effect)
# -----------------------------------------------------------
# Quieter OpenCV video backends
os.environ.setdefault("OPENCV_LOG_LEVEL", "ERROR")
os.environ.setdefault("OPENCV_VIDEOIO_DEBUG", "0")

# 2. IMPORT & EXECUTION
# -----------------------------------------------------------
try:
    from screenreality.cli import main

    if __name__ == "__main__":
        sys.exit(main())

except ImportError as e:
    logging.critical(f"ImportError: {e}", exc_info=True)
    sys.exit(1)
