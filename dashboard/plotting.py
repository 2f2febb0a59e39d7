"""Plot/theme helpers for the greenhouse history and sparkline figures."""

import html

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from dashboard.chart_scales import DEFAULT_CHART_SCALES
from dashboard.sparkline import SPARKLINE_DISPLAY_RANGES


DEFAULT_PLOT_THEME = {
    "font_family": "DM Sans, Segoe UI, Helvetica Neue, Arial, sans-serif",
    "paper_bg": "#ffffff",
    "plot_bg": "#ffffff",
    "grid": "#d7e3dd",
    "axis": "#234038",
    "text": "#1b2b26",
    "muted": "#546b63",
}

DEFAULT_TRACE_COLORS = {
    "temp": "#12a150",
    "hum": "#6b7c85",
    "light1": "#12a150",
    "light2": "#6b7c85",
    "soil1": "#12a150",
    "soil2": "#6b7c85",
}


def apply_figure_theme(fig, plot_theme, *, height, margin, showlegend=True, legend_y=1.08):
    fig.update_layout(
        height=height,
        margin=margin,
        showlegend=showlegend,
        legend=dict(
            orientation="h",
            yanchor="bottom",
            y=legend_y,
            xanchor="center",
            x=0.5,
            bgcolor="rgba(255, 255, 255, 0.7)",
            bordercolor=plot_theme["grid"],
            borderwidth=1,
            font=dict(color=plot_theme["axis"], family=plot_theme["font_family"], size=11),
        ),
        plot_bgcolor=plot_theme["plot_bg"],
        paper_bgcolor=plot_theme["paper_bg"],
        font=dict(color=plot_theme["text"], family=plot_theme["font_family"], size=12),
        hovermode="x unified",
    )
    axis_style = dict(
        gridcolor=plot_theme["grid"],
        linecolor=plot_theme["grid"],
        zerolinecolor=plot_theme["grid"],
        tickfont=dict(color=plot_theme["muted"], family=plot_theme["font_family"]),
        title_font=dict(color=plot_theme["axis"], family=plot_theme["font_family"]),
    )
    fig.update_xaxes(**axis_style)
    fig.update_yaxes(**axis_style)


def create_temp_hum_figure(
    datasets,
    chart_scales=None,
    *,
    plot_theme=None,
    trace_colors=None,
):
    """Temperature (left axis) and humidity (right axis) with resolved chart scales as y ranges."""
    plot_theme = plot_theme or DEFAULT_PLOT_THEME
    trace_colors = trace_colors or DEFAULT_TRACE_COLORS
    scales = chart_scales or DEFAULT_CHART_SCALES

    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Scatter(
            x=datasets["labels"],
            y=datasets["temps"],
            name="Temperature (°C)",
            mode="lines",
            line=dict(color=trace_colors["temp"], shape="spline", smoothing=0.4),
        ),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(
            x=datasets["labels"],
            y=datasets["hums"],
            name="Humidity (%)",
            mode="lines",
            line=dict(color=trace_colors["hum"], shape="spline", smoothing=0.4),
        ),
        secondary_y=True,
    )
    apply_figure_theme(fig, plot_theme, height=320, margin=dict(l=50, r=50, t=40, b=40))
    fig.update_yaxes(title_text="Temperature (°C)", range=[scales.temp_min, scales.temp_max], secondary_y=False)
    fig.update_yaxes(
        title_text="Humidity (%)",
        range=[scales.hum_min, scales.hum_max],
        showgrid=False,
        secondary_y=True,
    )
    fig.update_xaxes(type="category", nticks=12)
    return fig


def _chamber_label(datasets, idx):
    labels = list(datasets.get("chamber_labels") or [])
    if idx < len(labels) and labels[idx]:
        return labels[idx]
    return f"Chamber {idx + 1}"


def create_light_figure(datasets, *, plot_theme=None, trace_colors=None):
    """Stepped 0/1 light state per chamber."""
    plot_theme = plot_theme or DEFAULT_PLOT_THEME
    trace_colors = trace_colors or DEFAULT_TRACE_COLORS

    fig = go.Figure()
    for idx, key in enumerate(("light1", "light2")):
        fig.add_trace(
            go.Scatter(
                x=datasets["labels"],
                y=datasets[key],
                name=_chamber_label(datasets, idx),
                mode="lines",
                line=dict(color=trace_colors[key], shape="hv"),
            )
        )
    apply_figure_theme(fig, plot_theme, height=240, margin=dict(l=50, r=20, t=40, b=40))
    fig.update_yaxes(title_text="Light state (0/1)", range=[-0.1, 1.1], dtick=1)
    fig.update_xaxes(type="category", nticks=12)
    return fig


def create_soil_figure(datasets, *, plot_theme=None, trace_colors=None):
    plot_theme = plot_theme or DEFAULT_PLOT_THEME
    trace_colors = trace_colors or DEFAULT_TRACE_COLORS

    fig = go.Figure()
    for idx, key in enumerate(("soil1", "soil2")):
        fig.add_trace(
            go.Scatter(
                x=datasets["labels"],
                y=datasets[key],
                name=_chamber_label(datasets, idx),
                mode="lines",
                line=dict(color=trace_colors[key]),
            )
        )
    apply_figure_theme(fig, plot_theme, height=240, margin=dict(l=50, r=20, t=40, b=40))
    fig.update_yaxes(title_text="Soil moisture (%)", range=[0, 100])
    fig.update_xaxes(type="category", nticks=12)
    return fig


def create_sparkline_figure(channel, values, *, color=None, plot_theme=None):
    """Axis-less trend line; values are clamped into the channel's display range."""
    plot_theme = plot_theme or DEFAULT_PLOT_THEME
    lo, hi = SPARKLINE_DISPLAY_RANGES.get(channel, (0.0, 100.0))
    clamped = [min(hi, max(lo, value)) for value in values]

    fig = go.Figure(
        go.Scatter(
            y=clamped,
            mode="lines",
            line=dict(color=color or DEFAULT_TRACE_COLORS.get("temp"), width=2),
            hoverinfo="skip",
        )
    )
    fig.update_layout(
        height=38,
        margin=dict(l=0, r=0, t=0, b=0),
        showlegend=False,
        plot_bgcolor=plot_theme["plot_bg"],
        paper_bgcolor=plot_theme["paper_bg"],
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False, range=[lo, hi])
    return fig


def render_dashboard_html(datasets, chart_scales=None, sparklines=None, *, title="Greenhouse history"):
    """Standalone HTML page with the history charts and, when given, one sparkline per channel."""
    figures = [
        create_temp_hum_figure(datasets, chart_scales),
        create_light_figure(datasets),
        create_soil_figure(datasets),
    ]
    for channel, values in (sparklines or {}).items():
        if values:
            figures.append(create_sparkline_figure(channel, values))

    sections = []
    for idx, fig in enumerate(figures):
        sections.append(fig.to_html(full_html=False, include_plotlyjs="cdn" if idx == 0 else False))
    return (
        "<!DOCTYPE html>\n<html>\n<head><meta charset=\"utf-8\"><title>"
        + html.escape(title)
        + "</title></head>\n<body>\n"
        + "\n".join(sections)
        + "\n</body>\n</html>\n"
    )
