import typing as tp

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from hetmanet.simulation.metrics import SweepSummaryRow

MOBILITY_LABELS = {0: "fast", 1: "slow"}
MOBILITY_COLORS = {0: "#E63946", 1: "#2E86AB"}
COLOR_OTHER = "#6C757D"


def plot_protocol_comparison(
    rows: tp.Sequence[SweepSummaryRow],
    fig: go.Figure | None = None,
    title: str | None = None,
):
    """
    Grouped bar charts of a protocol sweep using Plotly.

    One panel per metric (throughput, mean delay, lost packets), one bar
    group per protocol and one bar color per mobility mode. Undefined
    metrics are drawn as missing bars.

    Args:
        rows: Summary rows of the sweep.
        fig: Existing Plotly figure with three subplot columns.
        title: Plot title.
    """
    if fig is None:
        fig = make_subplots(
            rows=1,
            cols=3,
            subplot_titles=("Throughput (Mbps)", "Mean delay (s)", "Lost packets"),
        )

    mobility_types = sorted({row.mobility_type for row in rows})

    for mobility_type in mobility_types:
        subset = [row for row in rows if row.mobility_type == mobility_type]
        protocols = [row.protocol for row in subset]
        label = MOBILITY_LABELS.get(mobility_type, f"mode {mobility_type}")
        color = MOBILITY_COLORS.get(mobility_type, COLOR_OTHER)

        panels = (
            [row.mean_throughput_mbps for row in subset],
            [row.mean_delay for row in subset],
            [row.total_lost_packets for row in subset],
        )
        for col, values in enumerate(panels, start=1):
            fig.add_trace(
                go.Bar(
                    x=protocols,
                    y=values,
                    name=label,
                    legendgroup=label,
                    showlegend=col == 1,
                    marker_color=color,
                ),
                row=1,
                col=col,
            )

    fig.update_layout(
        title=title if title else "",
        barmode="group",
        legend=dict(orientation="h", yanchor="bottom", y=1.05, xanchor="right", x=1),
        template="plotly_white",
    )

    return fig
