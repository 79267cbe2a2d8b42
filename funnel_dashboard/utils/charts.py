"""
SVG geometry for the dashboard's line charts.

The template draws whatever this returns; no plotting library is involved.
"""
import math
from typing import Dict, Any, List


def line_chart(
    series: List[Dict[str, Any]],
    width: int = 640,
    height: int = 220,
    padding: int = 36
) -> Dict[str, Any]:
    """
    Compute the drawing primitives for a single-series line chart.

    Args:
        series: Ordered points of the form {'day': 'YYYY-MM-DD', 'value': int}
        width: Canvas width in pixels
        height: Canvas height in pixels
        padding: Inset of the plot area on every side

    Returns:
        Dict with the SVG path, point coordinates, x labels and y ticks
    """
    values = [point['value'] for point in series]
    max_y = max([1] + values)
    min_y = 0
    steps = max(1, len(series) - 1)

    def x(i):
        return padding + (i * (width - padding * 2)) / steps

    def y(v):
        return height - padding - ((v - min_y) / (max_y - min_y)) * (height - padding * 2)

    points = [
        {'x': round(x(i), 2), 'y': round(y(point['value']), 2), 'day': point['day'], 'value': point['value']}
        for i, point in enumerate(series)
    ]
    path = ' '.join(
        f"{'M' if i == 0 else 'L'} {p['x']} {p['y']}" for i, p in enumerate(points)
    )

    ticks = []
    for tick in (0, math.ceil(max_y / 2), max_y):
        ticks.append({'value': tick, 'y': round(y(tick), 2)})

    return {
        'width': width,
        'height': height,
        'padding': padding,
        'path': path,
        'points': points,
        'y_ticks': ticks,
    }
