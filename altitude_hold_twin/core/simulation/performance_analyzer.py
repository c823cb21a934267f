"""
Performance Analyzer for the Altitude-Hold Digital Twin

Step-response figures of merit extracted from a completed simulation record.
All metrics are computed from the true altitude against the reference C,
which defaults to the final commanded altitude.

Key Metrics:
-----------
1. Overshoot: max(0, (peak - C) / C) in percent, 0 when C == 0
2. Settling Time: first sample after the last excursion outside ±tol·|C|
3. Rise Time: time from 10 % to 90 % of C
4. Steady-State Error: |h_final - C|
5. Thrust Variation: max - min of the normalized thrust command
6. Disturbance Deviation: max |C - h| while a step or impulse disturbance acts
7. Recovery Time: time after the disturbance ends until h stays within ±tol·|C|

Undefined results (never settled, 90 % never reached, zero reference for
rise time) are reported as None rather than raised.

Acceptance:
----------
AcceptanceCriteria turns the metrics into per-requirement PASS / FAIL
checks. An undefined metric fails its check.
"""

import warnings
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from altitude_hold_twin.core.exceptions import InvalidInput
from altitude_hold_twin.core.simulation.telemetry import SimulationRecord


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Container for computed step-response metrics.

    Altitudes and errors in metres, times in seconds, thrust values in
    normalized command units.
    """
    # Step-response metrics
    overshoot_percent: float = 0.0
    settling_time_seconds: Optional[float] = None
    rise_time_seconds: Optional[float] = None
    steady_state_error_meters: float = 0.0

    # Control effort
    thrust_variation: float = 0.0
    max_thrust: float = 0.0
    min_thrust: float = 0.0

    # Context
    command_reference: float = 0.0
    settling_tolerance: float = 0.05
    final_altitude: float = 0.0
    peak_altitude: float = 0.0

    # Tracking error statistics
    max_abs_error: float = 0.0
    rms_error: float = 0.0

    # Time-domain stats
    total_duration: float = 0.0
    sample_count: int = 0
    truncated: bool = False
    oscillation_stable: bool = True

    # Disturbance rejection (None without a windowed disturbance)
    disturbance_end_time: Optional[float] = None
    disturbance_deviation_meters: Optional[float] = None
    recovery_time_seconds: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AcceptanceCriteria:
    """Requirement thresholds; None disables a check."""
    max_overshoot_percent: Optional[float] = 5.0
    max_settling_time: Optional[float] = 8.0         # s
    max_steady_state_error: Optional[float] = 0.5    # m
    max_rise_time: Optional[float] = None            # s
    max_thrust_variation: Optional[float] = None
    max_disturbance_deviation: Optional[float] = None  # m
    max_recovery_time: Optional[float] = None          # s
    require_complete_run: bool = True


@dataclass(frozen=True)
class RequirementCheck:
    """Outcome of one acceptance requirement."""
    name: str
    observed: Optional[float]
    threshold: Optional[float]
    passed: bool
    unit: str = ""


@dataclass(frozen=True)
class AcceptanceResult:
    """All requirement checks of one run."""
    checks: Tuple[RequirementCheck, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return all(check.passed for check in self.checks)

    @property
    def failed_checks(self) -> Tuple[RequirementCheck, ...]:
        return tuple(check for check in self.checks if not check.passed)

    def __getitem__(self, name: str) -> RequirementCheck:
        for check in self.checks:
            if check.name == name:
                return check
        raise KeyError(name)


def compute_overshoot(altitude: np.ndarray, reference: float) -> float:
    """
    Percent overshoot of the response beyond the reference.

    The peak is the maximum for a positive reference and the minimum for a
    negative one. A zero reference has no meaningful percentage and yields
    0.0.
    """
    if reference == 0.0:
        return 0.0
    peak = np.max(altitude) if reference > 0.0 else np.min(altitude)
    return float(max(0.0, (peak - reference) / reference * 100.0))


def compute_settling_time(
    time: np.ndarray,
    altitude: np.ndarray,
    reference: float,
    tolerance: float = 0.05
) -> Optional[float]:
    """
    Settling time by backward scan for the last band violation.

    Parameters
    ----------
    time : np.ndarray
        Sample times [s]
    altitude : np.ndarray
        Response [m]
    reference : float
        Reference value C [m]
    tolerance : float
        Band half-width as a fraction of |C|; for C == 0 the band is
        ``tolerance`` metres

    Returns
    -------
    Optional[float]
        Time of the first sample after the last violation, ``time[0]`` if the
        response never leaves the band, None if the last sample is outside it
    """
    band = tolerance * abs(reference) if reference != 0.0 else tolerance
    outside = np.abs(altitude - reference) > band
    if not np.any(outside):
        return float(time[0])
    last_violation = int(np.nonzero(outside)[0][-1])
    if last_violation == len(time) - 1:
        return None
    return float(time[last_violation + 1])


def compute_rise_time(
    time: np.ndarray,
    altitude: np.ndarray,
    reference: float,
    low: float = 0.1,
    high: float = 0.9
) -> Optional[float]:
    """
    Rise time between the first crossings of low·C and high·C.

    Crossings are taken in the direction of C. Returns None when either
    level is never reached or C == 0.
    """
    if reference == 0.0:
        return None
    direction = np.sign(reference)
    progress = altitude * direction
    reached_low = np.nonzero(progress >= low * abs(reference))[0]
    reached_high = np.nonzero(progress >= high * abs(reference))[0]
    if len(reached_low) == 0 or len(reached_high) == 0:
        return None
    return float(time[reached_high[0]] - time[reached_low[0]])


def compute_recovery_time(
    time: np.ndarray,
    altitude: np.ndarray,
    reference: float,
    after_time: float,
    tolerance: float = 0.05
) -> Optional[float]:
    """
    Time after ``after_time`` (e.g. the end of a gust) until the response
    re-enters the ±tolerance·|C| band for good.

    Returns 0.0 if the response is inside the band for the whole window and
    None if it has not recovered by the end of the record.
    """
    window = time >= after_time - 1e-9
    if not np.any(window):
        raise InvalidInput(f"No samples at or after t={after_time}")
    settled_at = compute_settling_time(time[window], altitude[window], reference, tolerance)
    if settled_at is None:
        return None
    return float(max(0.0, settled_at - after_time))


def compute_disturbance_deviation(
    time: np.ndarray,
    altitude: np.ndarray,
    reference: float,
    start_time: float,
    end_time: float
) -> Optional[float]:
    """
    Largest |C - h| over the disturbance window [start_time, end_time].

    Returns None when no sample falls inside the window.
    """
    active = (time >= start_time - 1e-9) & (time <= end_time + 1e-9)
    if not np.any(active):
        return None
    return float(np.max(np.abs(reference - altitude[active])))


def disturbance_window(parameters: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    """
    Active window (start, end) of a step or impulse disturbance.

    Parameters
    ----------
    parameters : Dict[str, Any]
        Plain-JSON run parameters as stored on a SimulationRecord

    Returns
    -------
    Optional[Tuple[float, float]]
        None for no disturbance, a zero magnitude or the bounded-random
        mode, which acts over the whole run
    """
    mode = parameters.get('disturbance_mode', 'none')
    if parameters.get('disturbance_magnitude', 0.0) == 0.0:
        return None
    start = float(parameters.get('disturbance_start_time', 0.0))
    if mode == 'step':
        return start, start + float(parameters.get('disturbance_duration', 0.0))
    if mode == 'impulse':
        return start, start + float(parameters.get('disturbance_impulse_width', 0.0))
    return None


def check_oscillation_stability(
    time: np.ndarray,
    altitude: np.ndarray,
    window: float = 4.0,
    growth_ratio: float = 1.5,
    atol: float = 1e-6
) -> bool:
    """
    Growing-oscillation check on the tail of the response.

    Compares the peak-to-peak amplitude of the last ``window`` seconds with
    that of the ``window`` seconds before it. Both windows should span
    several oscillation periods so the answer does not depend on where in a
    cycle the run ends.

    Parameters
    ----------
    time : np.ndarray
        Sample times [s]
    altitude : np.ndarray
        Response [m]
    window : float
        Length of each comparison window [s]
    growth_ratio : float
        Late/early amplitude ratio above which the oscillation is growing
    atol : float
        Amplitude floor [m] below which the tail counts as settled

    Returns
    -------
    bool
        False for a growing oscillation; True otherwise, including records
        shorter than two windows
    """
    if len(time) < 2 or time[-1] - time[0] < 2.0 * window:
        return True
    late_start = time[-1] - window
    early = altitude[(time >= late_start - window) & (time < late_start)]
    late = altitude[time >= late_start]
    return bool(np.ptp(late) <= growth_ratio * np.ptp(early) + atol)


class PerformanceAnalyzer:
    """
    Step-response analysis of altitude-hold simulation records.

    Usage:
    ------
    >>> analyzer = PerformanceAnalyzer(settling_tolerance=0.02)
    >>> metrics = analyzer.analyze(record)
    >>> print(f"Overshoot: {metrics.overshoot_percent:.2f} %")
    >>> print(analyzer.assess(metrics).passed)
    """

    def __init__(
        self,
        settling_tolerance: float = 0.05,  # 5% band
        rise_low: float = 0.1,
        rise_high: float = 0.9,
        criteria: Optional[AcceptanceCriteria] = None
    ):
        """
        Initialize performance analyzer.

        Parameters
        ----------
        settling_tolerance : float
            Settling band as fraction of |C| (typically 0.02 or 0.05)
        rise_low, rise_high : float
            Rise-time levels as fractions of C
        criteria : Optional[AcceptanceCriteria]
            Requirement thresholds for ``assess``
        """
        if not settling_tolerance > 0.0:
            raise InvalidInput("settling_tolerance must be > 0")
        if not 0.0 <= rise_low < rise_high <= 1.0:
            raise InvalidInput("rise levels must satisfy 0 <= low < high <= 1")
        self.settling_tolerance = settling_tolerance
        self.rise_low = rise_low
        self.rise_high = rise_high
        self.criteria = criteria if criteria is not None else AcceptanceCriteria()

    def analyze(
        self,
        record: SimulationRecord,
        command_reference: Optional[float] = None,
        disturbance: Optional[Tuple[float, float]] = None
    ) -> PerformanceMetrics:
        """
        Compute step-response metrics from a simulation record.

        Parameters
        ----------
        record : SimulationRecord
            Completed (possibly truncated) record
        command_reference : Optional[float]
            Reference C; defaults to the last commanded altitude
        disturbance : Optional[Tuple[float, float]]
            (start, end) of the disturbance for the deviation and recovery
            metrics; defaults to the window in ``record.parameters``

        Returns
        -------
        PerformanceMetrics
            Immutable metric set
        """
        if len(record) == 0:
            raise InvalidInput("Cannot analyze an empty simulation record")

        time = record.time
        altitude = record.true_altitude
        command = record.commanded_altitude
        thrust = record.thrust_command

        reference = float(command[-1]) if command_reference is None else float(command_reference)
        window = disturbance if disturbance is not None else disturbance_window(record.parameters)

        if record.truncated:
            warnings.warn(
                f"Analyzing truncated record ({record.termination.value}); "
                "metrics describe the partial run only"
            )

        error = command - altitude
        peak = np.max(altitude) if reference >= 0.0 else np.min(altitude)

        return PerformanceMetrics(
            overshoot_percent=compute_overshoot(altitude, reference),
            settling_time_seconds=compute_settling_time(
                time, altitude, reference, self.settling_tolerance),
            rise_time_seconds=compute_rise_time(
                time, altitude, reference, self.rise_low, self.rise_high),
            steady_state_error_meters=float(abs(altitude[-1] - reference)),
            thrust_variation=float(np.max(thrust) - np.min(thrust)),
            max_thrust=float(np.max(thrust)),
            min_thrust=float(np.min(thrust)),
            command_reference=reference,
            settling_tolerance=self.settling_tolerance,
            final_altitude=float(altitude[-1]),
            peak_altitude=float(peak),
            max_abs_error=float(np.max(np.abs(error))),
            rms_error=float(np.sqrt(np.mean(error**2))),
            total_duration=float(time[-1] - time[0]),
            sample_count=len(time),
            truncated=record.truncated,
            oscillation_stable=check_oscillation_stability(time, altitude),
            **self._disturbance_metrics(time, altitude, reference, window),
        )

    def _disturbance_metrics(
        self,
        time: np.ndarray,
        altitude: np.ndarray,
        reference: float,
        window: Optional[Tuple[float, float]]
    ) -> Dict[str, Optional[float]]:
        if window is None:
            return {}
        start, end = window
        recovery = None
        if end <= time[-1] + 1e-9:
            recovery = compute_recovery_time(
                time, altitude, reference, end, self.settling_tolerance)
        return {
            'disturbance_end_time': float(end),
            'disturbance_deviation_meters': compute_disturbance_deviation(
                time, altitude, reference, start, end),
            'recovery_time_seconds': recovery,
        }

    def assess(self, metrics: PerformanceMetrics) -> AcceptanceResult:
        """Evaluate pass/fail criteria against requirements."""
        c = self.criteria
        checks = []

        def _limit(name: str, observed: Optional[float], threshold: Optional[float], unit: str):
            if threshold is None:
                return
            passed = observed is not None and observed <= threshold
            checks.append(RequirementCheck(name, observed, threshold, passed, unit))

        _limit('overshoot', metrics.overshoot_percent, c.max_overshoot_percent, '%')
        _limit('settling_time', metrics.settling_time_seconds, c.max_settling_time, 's')
        _limit('steady_state_error', metrics.steady_state_error_meters, c.max_steady_state_error, 'm')
        _limit('rise_time', metrics.rise_time_seconds, c.max_rise_time, 's')
        _limit('thrust_variation', metrics.thrust_variation, c.max_thrust_variation, '')
        _limit('disturbance_deviation', metrics.disturbance_deviation_meters,
               c.max_disturbance_deviation, 'm')
        _limit('recovery_time', metrics.recovery_time_seconds, c.max_recovery_time, 's')

        if c.require_complete_run:
            checks.append(RequirementCheck(
                'complete_run', 0.0 if metrics.truncated else 1.0, 1.0,
                not metrics.truncated
            ))

        return AcceptanceResult(tuple(checks))

    def generate_report(
        self,
        metrics: PerformanceMetrics,
        assessment: Optional[AcceptanceResult] = None
    ) -> str:
        """
        Generate human-readable performance report.

        Parameters
        ----------
        metrics : PerformanceMetrics
            Computed metrics
        assessment : Optional[AcceptanceResult]
            Requirement checks; computed with ``assess`` when omitted

        Returns
        -------
        str
            Formatted report text
        """
        if assessment is None:
            assessment = self.assess(metrics)

        def _fmt(value: Optional[float], spec: str = '8.3f') -> str:
            return f"{value:{spec}}" if value is not None else f"{'n/a':>8}"

        report = []
        report.append("=" * 70)
        report.append("STEP RESPONSE ANALYSIS REPORT")
        report.append("=" * 70)
        report.append("")

        report.append("STEP RESPONSE:")
        report.append(f"  Reference Altitude:    {metrics.command_reference:8.3f} m")
        report.append(f"  Final Altitude:        {metrics.final_altitude:8.3f} m")
        report.append(f"  Peak Altitude:         {metrics.peak_altitude:8.3f} m")
        report.append(f"  Overshoot:             {metrics.overshoot_percent:8.2f} %")
        report.append(f"  Rise Time (10-90%):    {_fmt(metrics.rise_time_seconds)} s")
        report.append(f"  Settling Time ({metrics.settling_tolerance*100:.0f}%):    "
                      f"{_fmt(metrics.settling_time_seconds)} s")
        report.append(f"  Steady-State Error:    {metrics.steady_state_error_meters:8.4f} m")
        report.append("")

        report.append("TRACKING ERROR:")
        report.append(f"  Max |Error|:           {metrics.max_abs_error:8.4f} m")
        report.append(f"  RMS Error:             {metrics.rms_error:8.4f} m")
        report.append("")

        report.append("CONTROL EFFORT:")
        report.append(f"  Max Thrust Command:    {metrics.max_thrust:8.4f}")
        report.append(f"  Min Thrust Command:    {metrics.min_thrust:8.4f}")
        report.append(f"  Thrust Variation:      {metrics.thrust_variation:8.4f}")
        report.append("")

        if metrics.disturbance_end_time is not None:
            report.append("DISTURBANCE REJECTION:")
            report.append(f"  Disturbance End:       {metrics.disturbance_end_time:8.3f} s")
            report.append(f"  Max Deviation:         {_fmt(metrics.disturbance_deviation_meters)} m")
            report.append(f"  Recovery Time ({metrics.settling_tolerance*100:.0f}%):    "
                          f"{_fmt(metrics.recovery_time_seconds)} s")
            report.append("")

        report.append("REQUIREMENTS:")
        for check in assessment.checks:
            status = '✓ PASS' if check.passed else '✗ FAIL'
            report.append(f"  {check.name:<22} {_fmt(check.observed)} {check.unit:<2} "
                          f"[Req: <= {check.threshold:g}] {status}")
        report.append("")

        report.append("OVERALL ASSESSMENT:")
        report.append(f"  Overall Status:        "
                      f"{'✓ ALL REQUIREMENTS MET' if assessment.passed else '✗ SOME REQUIREMENTS NOT MET'}")
        report.append(f"  Oscillation Check:     {'stable' if metrics.oscillation_stable else 'GROWING'}")
        report.append("")
        report.append(f"  Duration:              {metrics.total_duration:8.4f} s")
        report.append(f"  Samples:               {metrics.sample_count:8d}")
        if metrics.truncated:
            report.append("  Run truncated (unstable or stopped)")
        report.append("=" * 70)

        return "\n".join(report)

    def to_dataframe(
        self,
        metrics: PerformanceMetrics,
        assessment: Optional[AcceptanceResult] = None
    ) -> pd.DataFrame:
        """
        Convert metrics to pandas DataFrame for batch analysis.

        Parameters
        ----------
        metrics : PerformanceMetrics
            Computed metrics
        assessment : Optional[AcceptanceResult]
            If given, one ``meets_<name>`` column per check plus ``passed``

        Returns
        -------
        pd.DataFrame
            Single-row DataFrame with all metrics
        """
        data = metrics.to_dict()
        if assessment is not None:
            for check in assessment.checks:
                data[f'meets_{check.name}'] = check.passed
            data['passed'] = assessment.passed
        return pd.DataFrame([data])
