"""CLIメインエントリーポイント"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from bayesian_svar import __version__
from bayesian_svar.cli.commands import estimate_command, simulate_data_command
from bayesian_svar.core.constants import SAMPLING_DEFAULTS

app = typer.Typer(
    name="bsvar",
    help="ゼロ・符号・ナラティブ制約付きベイズ構造VAR",
    no_args_is_help=True,
)
console = Console()


@app.command("estimate")
def estimate(
    data_file: Annotated[
        Path,
        typer.Argument(help="観測データCSVファイル"),
    ],
    restrictions_file: Annotated[
        Path,
        typer.Option("--restrictions", "-r", help="制約JSONファイル (zero_irf, sign_irf, sign_narrative)"),
    ],
    lags: Annotated[
        int,
        typer.Option("--lags", "-p", help="ラグ次数"),
    ] = 1,
    n_keep: Annotated[
        int,
        typer.Option("--keep", help="集める受容ドロー数"),
    ] = SAMPLING_DEFAULTS.n_keep,
    n_posterior: Annotated[
        int,
        typer.Option("--draws", "-d", help="リサンプリング後のドロー数"),
    ] = SAMPLING_DEFAULTS.n_posterior,
    max_attempts: Annotated[
        int,
        typer.Option("--max-attempts", help="試行上限"),
    ] = SAMPLING_DEFAULTS.max_attempts,
    horizon: Annotated[
        int,
        typer.Option("--horizon", help="IRFの最大ホライズン"),
    ] = SAMPLING_DEFAULTS.horizon,
    seed: Annotated[
        int,
        typer.Option("--seed", help="乱数シード"),
    ] = 0,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", help="並列ワーカー数"),
    ] = 1,
    executor: Annotated[
        str,
        typer.Option("--executor", help="並列方式: thread, process"),
    ] = "thread",
    narrative_draws: Annotated[
        int,
        typer.Option("--narrative-draws", help="ナラティブ重みのシミュレーション本数"),
    ] = SAMPLING_DEFAULTS.narrative_draws,
    prior: Annotated[
        str,
        typer.Option("--prior", help="事前分布: diffuse, minnesota"),
    ] = "diffuse",
    output_file: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="結果を保存する .npz ファイル"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="進捗ログを表示"),
    ] = False,
) -> None:
    """SVARを推定（ARRW重点サンプリング + ナラティブ制約）

    例:
        bsvar estimate data.csv -r restrictions.json --lags 1 --draws 1000
        bsvar estimate data.csv -r restrictions.json --workers 4 --executor process -o draws.npz
    """
    estimate_command(
        data_file,
        restrictions_file,
        lags,
        n_keep,
        n_posterior,
        max_attempts,
        horizon,
        seed,
        workers,
        executor,
        narrative_draws,
        prior,
        output_file,
        verbose,
    )


@app.command("simulate-data")
def simulate_data(
    output_file: Annotated[
        Path,
        typer.Option("--output", "-o", help="出力CSVファイルパス"),
    ] = Path("data/random_walk.csv"),
    periods: Annotated[
        int,
        typer.Option("--periods", "-p", help="生成期間数"),
    ] = 200,
    seed: Annotated[
        int,
        typer.Option("--seed", help="乱数シード"),
    ] = 42,
) -> None:
    """2変数ランダムウォークの合成データを生成してCSV出力

    例:
        bsvar simulate-data --output data/random_walk.csv
        bsvar simulate-data --periods 100 -o data/test_data.csv
    """
    simulate_data_command(output_file, periods, seed)


@app.command("version")
def version() -> None:
    """バージョン情報を表示"""
    console.print(f"bsvar version {__version__}")


if __name__ == "__main__":
    app()
