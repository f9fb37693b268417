"""Main entry point for ImiTune."""

import signal
import sys

from imitune.ui.app import ImituneApp
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

# Global app instance for signal handler
app_instance = None


def _cleanup() -> None:
    if app_instance:
        try:
            app_instance.cleanup()
        except Exception as e:
            logger.error(f"🛑 Error during application cleanup: {e}")


def signal_handler(sig, frame):
    """Handle interrupt signals gracefully."""
    logger.info("Received interrupt signal, shutting down...")
    _cleanup()
    sys.exit(0)


def main() -> None:
    """Main function to run ImiTune."""
    global app_instance

    logger.info("Starting ImiTune...")

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app_instance = ImituneApp()
        exit_code = app_instance.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user (Ctrl+C)")
        _cleanup()
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        _cleanup()
        sys.exit(1)

    _cleanup()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
