from __future__ import annotations

from dataclasses import replace

from frontend.ui.charts import create_sessions_over_time_chart, create_sessions_per_agent_chart


def test_sessions_per_agent_counts(sample_metrics_row) -> None:
    rows = [sample_metrics_row, sample_metrics_row, replace(sample_metrics_row, agent="Agent Z")]

    fig = create_sessions_per_agent_chart(rows)

    totals = {trace.x[0]: trace.y[0] for trace in fig.data}
    assert totals == {"101 - Block 5 - Practice Session": 2, "Agent Z": 1}


def test_sessions_over_time_fills_gaps(sample_metrics_row) -> None:
    rows = [sample_metrics_row, replace(sample_metrics_row, date="2024-05-04")]

    fig = create_sessions_over_time_chart(rows)

    assert list(fig.data[0].y) == [1, 0, 0, 1]


def test_empty_rows_give_empty_figures() -> None:
    assert len(create_sessions_per_agent_chart([]).data) == 0
    assert len(create_sessions_over_time_chart([]).data) == 0
