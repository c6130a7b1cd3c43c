#!/usr/bin/env python3
"""
Render the analysis results as a single self-contained HTML report.
Figures are drawn with matplotlib/seaborn and embedded as base64 PNGs.
"""

from __future__ import annotations

import base64
import html
import io
import logging
from pathlib import Path
from typing import Any, Optional

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from ..models.utils import create_timestamp

logger = logging.getLogger(__name__)

_STYLE = """
body { font-family: Helvetica, Arial, sans-serif; margin: 2em auto; max-width: 960px; color: #222; }
h1 { border-bottom: 2px solid #444; padding-bottom: .3em; }
h2 { margin-top: 1.8em; }
table.dataframe { border-collapse: collapse; margin: 1em 0; font-size: 0.9em; }
table.dataframe th, table.dataframe td { border: 1px solid #bbb; padding: 4px 8px; text-align: right; }
table.dataframe th { background: #eee; }
code, pre { background: #f5f5f5; padding: 2px 4px; }
img { max-width: 100%; }
"""


def _fig_to_base64(fig) -> str:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=120, bbox_inches="tight")
    plt.close(fig)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def plot_rfcv_curve(rfcv_table: pd.DataFrame, n_selected: Optional[int] = None) -> str:
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.plot(rfcv_table["n_var"], rfcv_table["error_cv"], marker="o", color="#1f77b4")
    if n_selected is not None:
        ax.axvline(n_selected, color="#d62728", linestyle="--", linewidth=1, label=f"selected: {n_selected}")
        ax.legend(frameon=False)
    ax.set_xscale("log")
    ax.set_xticks(rfcv_table["n_var"].tolist())
    ax.set_xticklabels([str(k) for k in rfcv_table["n_var"]])
    ax.set_xlabel("Number of predictors")
    ax.set_ylabel("CV error rate")
    ax.set_title("Random-forest cross-validation")
    fig.tight_layout()
    return _fig_to_base64(fig)


def plot_importance(ranking: pd.DataFrame, top: int = 20) -> str:
    head = ranking.sort_values("rank").head(top)
    fig, ax = plt.subplots(figsize=(6, max(3, 0.3 * len(head))))
    ax.barh(head["feature"][::-1], head["importance"][::-1], color="#2ca02c")
    ax.set_xlabel("Importance")
    ax.set_title(f"Top {len(head)} predictors")
    fig.tight_layout()
    return _fig_to_base64(fig)


def plot_confusion_heatmap(table: pd.DataFrame, title: str) -> str:
    counts = table.drop(columns=["class.error"], errors="ignore")
    fig, ax = plt.subplots(figsize=(5, 4))
    sns.heatmap(counts, annot=True, fmt="d", cmap="Blues", cbar=False, ax=ax)
    ax.set_xlabel("Predicted")
    ax.set_ylabel("Reference")
    ax.set_title(title)
    fig.tight_layout()
    return _fig_to_base64(fig)


def _table(df: pd.DataFrame, index: bool = False, float_format: str = "{:.4f}") -> str:
    return df.to_html(index=index, border=0, float_format=float_format.format, na_rep="")


def _img(b64: str, alt: str) -> str:
    return f'<img src="data:image/png;base64,{b64}" alt="{html.escape(alt)}"/>'


def _kv_table(pairs: list[tuple[str, Any]]) -> str:
    return _table(pd.DataFrame(pairs, columns=["item", "value"]).astype({"value": str}))


def render_html_report(results: dict[str, Any],
                       output_path: str | Path,
                       title: str = "Weight Lifting Exercise: activity quality prediction") -> Path:
    """
    Write the HTML report.

    Expected keys in `results`: dataset, pruning, rfcv, n_selected, importance,
    selected_features, formula, model, predictions; `holdout` is optional.

    Returns:
        Path of the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    dataset = results["dataset"]
    pruning = results["pruning"]
    rfcv_table = results["rfcv"]
    ranking = results["importance"]
    model = results["model"]
    predictions = results["predictions"]
    holdout = results.get("holdout")

    sections: list[str] = []

    sections.append("<h2>Data</h2>")
    sections.append(_kv_table([
        ("training (raw)", " x ".join(map(str, dataset["training_shape"]))),
        ("testing (raw)", " x ".join(map(str, dataset["testing_shape"]))),
        ("training (pruned)", " x ".join(map(str, dataset["pruned_training_shape"]))),
        ("testing (pruned)", " x ".join(map(str, dataset["pruned_testing_shape"]))),
    ]))
    if "class_counts" in dataset:
        counts = pd.Series(dataset["class_counts"], name="rows").rename_axis("classe").reset_index()
        sections.append(_table(counts))

    sections.append("<h2>Column pruning</h2>")
    dropped = pruning.get("dropped", {})
    sections.append(
        "<p>Columns with missing values in the training set and bookkeeping columns "
        "(row index, subject, timestamps, windows) are removed.</p>"
    )
    sections.append(_kv_table([(f"dropped: {reason}", len(cols)) for reason, cols in dropped.items()]
                              + [("predictors kept", len(pruning["features"]))]))
    sections.append(f"<p><code>{html.escape(', '.join(pruning['features']))}</code></p>")

    sections.append("<h2>Feature selection</h2>")
    sections.append(_table(rfcv_table, float_format="{:.4f}"))
    sections.append(_img(plot_rfcv_curve(rfcv_table, results["n_selected"]), "rfcv error curve"))
    sections.append(f"<p>Predictors kept: <b>{results['n_selected']}</b></p>")
    selected = ranking[ranking["feature"].isin(results["selected_features"])]
    sections.append(_table(selected[["rank", "feature", "importance"]], float_format="{:.5f}"))
    sections.append(_img(plot_importance(ranking), "feature importance"))

    sections.append("<h2>Model</h2>")
    sections.append(f"<pre>{html.escape(results['formula'])}</pre>")
    sections.append(_kv_table([(k, v) for k, v in model.get("params", {}).items()]
                              + [("OOB estimate of error rate", f"{model['oob_error']:.2%}")]))
    oob_cm = model.get("oob_confusion_matrix")
    if isinstance(oob_cm, pd.DataFrame):
        sections.append(_table(oob_cm, index=True))

    if holdout:
        sections.append("<h2>Out-of-sample estimate</h2>")
        sections.append(_kv_table([
            ("training rows", holdout["n_train"]),
            ("validation rows", holdout["n_validation"]),
            ("accuracy", f"{holdout['accuracy']:.4f}"),
            ("out-of-sample error", f"{holdout['out_of_sample_error']:.4f}"),
        ]))
        sections.append(_table(holdout["confusion_matrix"], index=True))
        sections.append(_img(plot_confusion_heatmap(holdout["confusion_matrix"], "Validation confusion matrix"),
                             "validation confusion matrix"))

    sections.append("<h2>Predictions</h2>")
    sections.append(_table(predictions))
    sections.append(f"<pre>{html.escape(' '.join(map(str, predictions.iloc[:, -1])))}</pre>")

    generated = results.get("generated_at") or create_timestamp()
    document = "\n".join([
        "<!DOCTYPE html>",
        "<html lang=\"en\">",
        "<head>",
        "<meta charset=\"utf-8\"/>",
        f"<title>{html.escape(title)}</title>",
        f"<style>{_STYLE}</style>",
        "</head>",
        "<body>",
        f"<h1>{html.escape(title)}</h1>",
        f"<p>Generated {html.escape(str(generated))}</p>",
        *sections,
        "</body>",
        "</html>",
    ])

    output_path.write_text(document, encoding="utf-8")
    logger.info(f"HTML report written to: {output_path}")
    return output_path
