import numpy as np

def soft_clip(x: np.ndarray, drive: float = 1.5) -> np.ndarray:
    # tanh limiter, +-1 stays at +-1. drive ~ 1.2-2.0
    return np.tanh(drive * x) / np.tanh(drive)

def peak(x: np.ndarray) -> float:
    return float(np.max(np.abs(x))) if x.size else 0.0

def rms(x: np.ndarray) -> float:
    return float(np.sqrt(np.mean(x.astype(np.float64) ** 2))) if x.size else 0.0
