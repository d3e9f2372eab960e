import numpy as np


def make_image(width: int, height: int, value: int = 0) -> np.ndarray:
    """BGR image with a horizontal gradient so crops are position dependent."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :, 0] = (np.arange(width) % 256).astype(np.uint8)[None, :]
    img[:, :, 1] = (np.arange(height) % 256).astype(np.uint8)[:, None]
    img[:, :, 2] = value
    return img
