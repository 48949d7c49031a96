import os
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats
import logging
from pathlib import Path
import numpy as np

from src.censoring.simulation.estimators import get_estimator

logger = logging.getLogger(__name__)

# --- Helper Functions ---

def discover_report_dirs(base_dir='results/report/', use_latest_only=False):
    """
    Find report directories produced by run_simulation.

    Parameters:
    -----------
    base_dir : str
        Base directory to search for report directories
    use_latest_only : bool, default=False
        If True, return only the most recently modified directory.

    Returns:
    --------
    list : List of report directory paths
    """
    base_path = Path(base_dir)
    if not base_path.exists():
        logger.error(f"Base directory does not exist: {base_dir}")
        return []

    report_dirs = []
    for d in base_path.iterdir():
        results_file = d / 'results_summary.csv'
        if d.is_dir() and d.name.startswith('n_') and results_file.exists() and results_file.stat().st_size > 0:
            report_dirs.append(d)

    if not report_dirs:
        logger.error(f"No valid report directories found in {base_dir} (all are empty or missing results_summary.csv)")
        return []

    if use_latest_only:
        report_dirs = sorted(report_dirs, key=lambda p: (p / 'results_summary.csv').stat().st_mtime, reverse=True)
        logger.info(f"Using only the most recent directory: {report_dirs[0].name}")
        return [str(report_dirs[0])]

    logger.info(f"Found {len(report_dirs)} report directories: {[d.name for d in report_dirs]}")
    return [str(d) for d in sorted(report_dirs)]

def load_results(report_dir):
    """Load results_all_runs.csv and results_summary.csv from a report directory."""
    results_all_path = os.path.join(report_dir, 'results_all_runs.csv')
    results_summary_path = os.path.join(report_dir, 'results_summary.csv')
    if not os.path.exists(results_all_path):
        logger.warning(f"Missing results_all_runs.csv in {report_dir}")
        return None, None
    results_all = pd.read_csv(results_all_path)
    results_summary = pd.read_csv(results_summary_path) if os.path.exists(results_summary_path) else None
    return results_all, results_summary

# --- Statistical Tests ---

def bias_tests(table, targets):
    """
    One-sample t-test per coefficient of H0: mean estimate == target.

    Returns:
    --------
    DataFrame indexed by term with mean, target, t_stat and p_value
    """
    frame = table.to_frame()
    rows = []
    for term in table.terms:
        values = frame[term].dropna()
        target = targets.get(term, np.nan)
        if len(values) < 2 or np.isnan(target):
            logger.warning(f"Not enough trials (or no target) to test bias of {term}.")
            t_stat, p_value = np.nan, np.nan
        else:
            t_stat, p_value = stats.ttest_1samp(values, target)
            logger.info(f"Bias test for {table.estimator} {term}: t={t_stat:.2f}, p={p_value:.3f}")
        rows.append({'term': term, 'mean': values.mean(), 'target': target,
                     't_stat': t_stat, 'p_value': p_value})
    return pd.DataFrame(rows).set_index('term')

# --- Plots ---

def plot_estimate_distribution(table, path, targets=None):
    """Box plot of the estimates across trials, grouped by coefficient name."""
    long = table.to_long()

    plt.figure(figsize=(8, 6))
    ax = sns.boxplot(data=long, x='term', y='estimate', order=table.terms, palette='Set2', hue='term', legend=False)
    if targets is not None:
        for i, term in enumerate(table.terms):
            if term in targets:
                ax.hlines(targets[term], i - 0.4, i + 0.4, colors='red', linestyles='--', linewidth=1)
    title = f"{table.estimator}: estimates over {len(table)} trials"
    if table.config is not None:
        title += f" (n={table.config.n}, rate={table.config.rate})"
    plt.title(title)
    plt.xlabel('Coefficient')
    plt.ylabel('Estimate')
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    logger.info(f"Saved box plot to {path}")
    return path

def covariate_estimates(results_all):
    """Long frame of the covariate-of-interest coefficient for every estimator row."""
    pieces = []
    for name, group in results_all.groupby('estimator', sort=False):
        term = get_estimator(name).covariate_of_interest
        pieces.append(pd.DataFrame({
            'estimator': name,
            'term': term,
            'rate': group['rate'].to_numpy(),
            'n': group['n'].to_numpy(),
            'estimate': group[term].to_numpy(),
        }))
    return pd.concat(pieces, ignore_index=True)

def plot_estimator_comparison(results_all, path):
    """Box plot of the covariate-of-interest coefficient by estimator (and rate)."""
    df = covariate_estimates(results_all)
    hue = 'rate' if df['rate'].nunique() > 1 else None

    plt.figure(figsize=(10, 6))
    sns.boxplot(data=df, x='estimator', y='estimate', hue=hue)
    plt.title('Coefficient on the covariate of interest by estimator')
    plt.xlabel('Estimator')
    plt.ylabel('Estimate')
    plt.xticks(rotation=30, ha='right')
    plt.grid(True, linestyle='--', alpha=0.5)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    logger.info(f"Saved estimator comparison plot to {path}")
    return path

# --- Main Comparison Function ---

def compare_estimators(report_dirs, figures_dir='results/figures/', tables_dir='results/tables/'):
    """Combine summaries across report directories and plot the estimator comparison."""
    all_results = []
    all_summaries = []
    for report_dir in report_dirs:
        results_all, results_summary = load_results(report_dir)
        if results_all is None:
            logger.warning(f"Skipping {report_dir} due to missing results")
            continue
        source = os.path.basename(os.path.normpath(report_dir))
        all_results.append(results_all.assign(source=source))
        if results_summary is not None:
            all_summaries.append(results_summary.assign(source=source))

    if not all_results:
        logger.error("No valid results found.")
        return None

    combined = pd.concat(all_results, ignore_index=True)
    os.makedirs(tables_dir, exist_ok=True)
    os.makedirs(figures_dir, exist_ok=True)
    if all_summaries:
        pd.concat(all_summaries, ignore_index=True).to_csv(
            os.path.join(tables_dir, 'combined_results_summary.csv'), index=False)

    plot_estimator_comparison(combined, os.path.join(figures_dir, 'estimator_comparison.png'))
    logger.info(f"Analysis complete. Tables in {tables_dir}, figures in {figures_dir}")
    return combined

if __name__ == "__main__":
    import sys
    import argparse

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    parser = argparse.ArgumentParser(description='Compare estimators across simulation reports')
    parser.add_argument('--latest', '-l', action='store_true',
                        help='Analyze only the most recent report directory')
    parser.add_argument('--dir', '-d', type=str, default=None, nargs='+',
                        help='Analyze specific report directory(ies)')
    parser.add_argument('--base-dir', type=str, default='results/report/',
                        help='Base directory to search for report directories (default: results/report/)')
    args = parser.parse_args()

    if args.dir:
        report_dirs = []
        for dir_arg in args.dir:
            report_dir = dir_arg if os.path.isabs(dir_arg) else os.path.join(args.base_dir, dir_arg)
            if not os.path.exists(os.path.join(report_dir, 'results_all_runs.csv')):
                logger.error(f"Directory {report_dir} does not contain results_all_runs.csv")
                sys.exit(1)
            report_dirs.append(report_dir)
    else:
        report_dirs = discover_report_dirs(args.base_dir, use_latest_only=args.latest)

    if report_dirs:
        compare_estimators(report_dirs)
    else:
        logger.error("Analysis aborted: No report directories found")
