"""Input device enumeration and validation.

Helpers used by the capture adapter and the device selector in the shell.
"""

from typing import Any, Dict, List, Optional, Tuple

import sounddevice as sd

from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


def list_input_devices() -> List[Dict[str, Any]]:
    """Get list of available audio input devices.

    Returns:
        List of device information dictionaries.
    """
    devices = []
    try:
        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append(
                    {
                        "index": i,
                        "name": device["name"],
                        "max_input_channels": device["max_input_channels"],
                        "default_samplerate": device["default_samplerate"],
                    }
                )
    except Exception as e:
        logger.error(f"🛑 Failed to enumerate audio devices: {e}")
    return devices


def validate_input_device(device_index: int) -> Tuple[bool, str]:
    """Validate that a device supports audio input.

    Args:
        device_index: Device index to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        device_info = sd.query_devices(device_index)

        if device_info["max_input_channels"] < 1:
            error_msg = f"Device '{device_info['name']}' is an output-only device"
            logger.warning(f"🟡 {error_msg}")
            return False, error_msg

        logger.debug(
            f"Validated device {device_index}: {device_info['name']} "
            f"({device_info['max_input_channels']} input channels)"
        )
        return True, ""

    except Exception as e:
        error_msg = f"Device {device_index} is not available: {e}"
        logger.error(f"🛑 {error_msg}")
        return False, error_msg


def recommend_input_device(preferred: Optional[int] = None) -> Optional[int]:
    """Pick an input device.

    Order: the preferred device if it has inputs, then the system default
    input, then the first device with inputs.

    Args:
        preferred: Configured device index, if any.

    Returns:
        Device index, or None for the PortAudio default.
    """
    if preferred is not None:
        ok, _ = validate_input_device(preferred)
        if ok:
            return preferred
        logger.warning(f"Configured device {preferred} unusable, falling back")

    try:
        default_input = sd.default.device[0]
        if default_input is not None and default_input >= 0:
            device_info = sd.query_devices(default_input)
            if device_info["max_input_channels"] > 0:
                logger.debug(f"Using default input device: {device_info['name']}")
                return int(default_input)
    except Exception as e:
        logger.debug(f"Default input device lookup failed: {e}")

    for device in list_input_devices():
        logger.debug(f"Using first available input device: {device['name']}")
        return int(device["index"])

    logger.warning("No input devices found")
    return None
