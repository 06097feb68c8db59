import os

import matplotlib
import numpy as np
import pandas as pd

from hrclust.clustering.base import NOISE_LABEL
from hrclust.utils.logging import get_logger

# Ensure headless environments can save figures
matplotlib.use('Agg')
import matplotlib.pyplot as plt  # noqa: E402

logger = get_logger(__name__)


def save_cluster_scatter_png(table: pd.DataFrame, cluster_column: str, out_path: str, title: str | None = None) -> None:
    """Scatter the 2-D embedding coloured by cluster; noise rows in grey."""
    if 'embed_x' not in table.columns or 'embed_y' not in table.columns:
        logger.warning("[!] Result table has no embedding columns, skipping scatter plot")
        return
    labels = table[cluster_column].to_numpy()
    x = table['embed_x'].to_numpy()
    y = table['embed_y'].to_numpy()

    plt.figure(figsize=(9, 7), dpi=160)
    noise = labels == NOISE_LABEL
    if noise.any():
        plt.scatter(x[noise], y[noise], s=8, alpha=0.5, color='#b0b0b0', label='noise')
    cmap = plt.get_cmap('tab20')
    for i, lb in enumerate(np.unique(labels[~noise])):
        idx = labels == lb
        plt.scatter(x[idx], y[idx], s=10, alpha=0.7, color=cmap(i % 20), label=f"cluster {lb}")
    plt.legend(markerscale=2, fontsize=7, frameon=False, loc='best')
    plt.title(title or f"Embedding coloured by {cluster_column}")
    plt.tight_layout()
    os.makedirs(os.path.dirname(out_path) or '.', exist_ok=True)
    plt.savefig(out_path)
    plt.close()
    logger.info(f"[+] Saved scatter PNG -> {out_path}")


def save_attrition_bar_png(summary: pd.DataFrame, out_path: str, title: str | None = None) -> None:
    """Bar chart of attrition rate per cluster, in summary order."""
    plt.figure(figsize=(9, 5), dpi=160)
    names = [str(c) for c in summary['cluster']]
    bars = plt.bar(names, summary['attrition_rate'], color='#d62728', alpha=0.8)
    for bar, count in zip(bars, summary['member_count']):
        plt.annotate(f"n={count}", (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                     ha='center', va='bottom', fontsize=7)
    plt.ylim(0, 1)
    plt.xlabel('cluster')
    plt.ylabel('attrition rate')
    plt.title(title or "Attrition rate by cluster")
    plt.tight_layout()
    os.makedirs(os.path.dirname(out_path) or '.', exist_ok=True)
    plt.savefig(out_path)
    plt.close()
    logger.info(f"[+] Saved attrition PNG -> {out_path}")
