from __future__ import annotations

import numpy as np

from facepulse.bpm import (
    DEFAULT_BPM,
    SpectralConfig,
    analyze,
    dft_magnitude,
    fft_magnitude,
    magnitude_spectrum,
)
from facepulse.preprocess import condition


def test_analyze_on_sine() -> None:
    fs = 30.0
    t = np.arange(0, 20.0, 1 / fs)
    x = np.sin(2 * np.pi * 1.2 * t)  # 72 BPM
    est = analyze(condition(x), fs)
    assert est.bpm == 72
    assert abs(est.peak_hz - 1.2) < 0.1
    assert est.confidence == 1.0


def test_tone_in_noise_beats_pure_noise() -> None:
    fs = 30.0
    n = 300
    t = np.arange(n) / fs
    noise = 0.5 * np.random.RandomState(0).randn(n)
    tone = analyze(condition(np.sin(2 * np.pi * 1.2 * t) + noise), fs)
    pure = analyze(condition(noise), fs)
    assert abs(tone.bpm - 72) <= 3
    assert tone.confidence > pure.confidence
    assert tone.snr > pure.snr


def test_out_of_band_tone_is_not_selected() -> None:
    fs = 30.0
    t = np.arange(300) / fs
    # 0.2 Hz "breathing" dominates every in-band bin
    x = 10.0 * np.sin(2 * np.pi * 0.2 * t) + 0.5 * np.sin(2 * np.pi * 1.2 * t)
    spec = magnitude_spectrum(condition(x), fs)
    assert spec.freqs[int(np.argmax(spec.magnitude))] < 0.7
    est = analyze(condition(x), fs)
    assert est.bpm != 12
    assert abs(est.bpm - 72) <= 3


def test_fft_and_dft_agree() -> None:
    for n in (64, 101, 300):
        x = np.random.RandomState(n).randn(n)
        assert np.allclose(fft_magnitude(x), dft_magnitude(x), atol=1e-8)
        assert fft_magnitude(x).size == (n + 1) // 2
    fs = 30.0
    t = np.arange(0, 12.0, 1 / fs)
    x = condition(np.sin(2 * np.pi * 1.5 * t) + 0.2 * np.random.RandomState(0).randn(t.size))
    a = analyze(x, fs, SpectralConfig(method="fft"))
    b = analyze(x, fs, SpectralConfig(method="dft"))
    assert a.bpm == b.bpm == 90
    assert np.isclose(a.snr, b.snr)


def test_bin_frequencies() -> None:
    spec = magnitude_spectrum(np.ones(300), 30.0)
    assert np.isclose(spec.freqs[1], 0.1)
    assert np.isclose(spec.freqs[-1], 149 * 30.0 / 300)


def test_short_and_degenerate_inputs() -> None:
    short = analyze(np.ones(29), 30.0)
    assert (short.bpm, short.confidence, short.snr) == (0, 0.0, 0.0)
    flat = analyze(np.zeros(300), 30.0)
    assert flat.bpm == DEFAULT_BPM
    assert flat.confidence == 0.0
    x = np.sin(np.arange(300) * 0.25)
    x[10] = np.nan
    bad = analyze(x, 30.0)
    assert bad.bpm == 0 and bad.confidence == 0.0


def test_confidence_scale_is_tunable() -> None:
    fs = 30.0
    t = np.arange(300) / fs
    x = condition(np.sin(2 * np.pi * 1.2 * t) + np.random.RandomState(1).randn(300))
    a = analyze(x, fs, SpectralConfig(confidence_snr_scale=10.0))
    b = analyze(x, fs, SpectralConfig(confidence_snr_scale=1000.0))
    assert a.snr == b.snr
    assert b.confidence < a.confidence
    assert 0.0 <= b.confidence <= 1.0
