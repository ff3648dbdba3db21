"""CLIコマンド実装"""

import json
import logging
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import TypeVar

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from bayesian_svar.core.exceptions import (
    BSVARError,
    DataValidationError,
    InfeasibleRestriction,
    NumericalError,
    ValidationError,
)
from bayesian_svar.estimation.data_fetcher import SyntheticSVARGenerator, random_walk_example
from bayesian_svar.estimation.data_loader import VARData
from bayesian_svar.estimation.priors import PriorSpec
from bayesian_svar.estimation.sampler import SamplerConfig, SVARSampler
from bayesian_svar.identification.restrictions import RestrictionSet

console = Console()

F = TypeVar("F", bound=Callable[..., None])


def handle_bsvar_error(func: F) -> F:
    """CLI用エラーハンドリングデコレータ

    BSVARの例外を捕捉し、ユーザーフレンドリーなエラーメッセージを表示する。
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except ValidationError as e:
            console.print(f"[red]入力エラー: {e}[/red]")
            raise typer.Exit(1) from e
        except (NumericalError, InfeasibleRestriction) as e:
            console.print(f"[red]計算エラー: {e}[/red]")
            raise typer.Exit(2) from e
        except BSVARError as e:
            console.print(f"[red]エラー: {e}[/red]")
            raise typer.Exit(3) from e

    return wrapper  # type: ignore[return-value]


def configure_logging(verbose: bool) -> None:
    """rich でライブラリのログを表示する"""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_restrictions(path: Path, n_vars: int) -> RestrictionSet:
    """JSONファイルから識別制約を読み込む

    Raises:
        ValidationError: ファイルが読めない、または内容が不正な場合
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        msg = f"制約ファイルを読み込めません: {path}"
        raise ValidationError(msg) from e
    if not isinstance(raw, dict):
        msg = f"制約ファイルはJSONオブジェクトである必要があります: {path}"
        raise ValidationError(msg)
    return RestrictionSet.from_dict(n_vars, raw)


@handle_bsvar_error
def estimate_command(
    data_file: Path,
    restrictions_file: Path,
    lags: int,
    n_keep: int,
    n_posterior: int,
    max_attempts: int,
    horizon: int,
    seed: int,
    workers: int,
    executor: str,
    narrative_draws: int,
    prior: str,
    output_file: Path | None,
    verbose: bool,
) -> None:
    """ゼロ・符号・ナラティブ制約付きSVARを推定する"""
    configure_logging(verbose)

    if not data_file.exists():
        msg = f"データファイルが見つかりません: {data_file}"
        raise DataValidationError(msg)
    data = VARData.from_csv(data_file, lags=lags)
    restrictions = load_restrictions(restrictions_file, data.n_vars)

    match prior:
        case "diffuse":
            prior_spec = PriorSpec.diffuse(data.n_vars, data.n_regressors)
        case "minnesota":
            prior_spec = PriorSpec.minnesota(data.data, lags)
        case _:
            msg = f"prior は 'diffuse' または 'minnesota': {prior}"
            raise ValidationError(msg)

    config = SamplerConfig(
        n_keep=n_keep,
        n_posterior=n_posterior,
        max_attempts=max_attempts,
        seed=seed,
        horizon=horizon,
        n_workers=workers,
        executor=executor,
        narrative_draws=narrative_draws,
    )

    console.print(
        f"[cyan]データ読み込み完了: {data_file} (T={data.n_periods}, N={data.n_vars}, p={lags})[/cyan]"
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("事後超パラメータを計算中...", total=None)
        sampler = SVARSampler(data, restrictions, prior=prior_spec, config=config)

        def report(accepted: int, attempts: int) -> None:
            progress.update(task, description=f"サンプリング中... 受容 {accepted}/{n_keep} (試行 {attempts})")

        result = sampler.run(progress=report)

    diag = result.diagnostics
    console.print()
    console.print(
        Panel(
            f"[bold]SVAR推定結果[/bold]\n"
            f"試行数: {diag.attempts}\n"
            f"受容数: {diag.accepted}\n"
            f"受容率: {diag.acceptance_rate:.4f}\n"
            f"有効サンプルサイズ: {diag.ess:.1f}\n"
            f"最終ドロー数: {result.n_draws}",
            title="Bayesian SVAR",
        )
    )

    if diag.rejections:
        table = Table(title="棄却理由")
        table.add_column("理由", style="cyan")
        table.add_column("件数", style="green")
        for reason, count in sorted(diag.rejections.items()):
            table.add_row(reason, str(count))
        console.print(table)

    if restrictions.narrative:
        console.print(
            f"ナラティブ制約: 生存 {diag.narrative_survivors}/{diag.narrative_evaluated}"
            f"（低信頼 {len(diag.low_confidence)}）"
        )

    console.print()
    console.print(result.summary_table())

    if output_file is not None:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        result.to_npz(str(output_file))
        console.print(f"\n[green]結果を保存しました: {output_file}[/green]")


@handle_bsvar_error
def simulate_data_command(output_file: Path, periods: int, seed: int) -> None:
    """2変数ランダムウォークの検証用データを生成してCSV出力"""
    if periods < 3:
        msg = f"期間数は3以上である必要があります: {periods}"
        raise ValidationError(msg)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("合成データを生成中...", total=None)

        structural, _ = random_walk_example()
        gen = SyntheticSVARGenerator()
        rng = np.random.default_rng(seed)
        data = gen.simulate(structural, n_periods=periods, rng=rng)

    output_file.parent.mkdir(parents=True, exist_ok=True)
    data.to_csv(output_file)

    console.print(f"[green]データを保存しました: {output_file}[/green]")
    console.print(f"期間数: {periods}")
    console.print(f"観測変数: {', '.join(data.variable_names)}")
