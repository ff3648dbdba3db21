"""推定用データの読込・VAR行列構築モジュール

観測パネル Y_full (T_full, N) とラグ次数 p から、推定用の
Y (T, N) と X (T, K), K = N p + 1 を構築する。

X の行は [y_{t-1}', ..., y_{t-p}', 1]（ラグが先、定数項が最後）。
"""

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from bayesian_svar.core.exceptions import DataValidationError


def build_var_matrices(data: np.ndarray, lags: int) -> tuple[np.ndarray, np.ndarray]:
    """ラグ付き説明変数行列を構築する

    Args:
        data: 観測パネル (T_full, N)
        lags: ラグ次数 p (>= 1)

    Returns:
        (Y, X) のタプル。Y: (T_full - p, N), X: (T_full - p, N p + 1)

    Raises:
        DataValidationError: 入力が不正な場合
    """
    data = np.asarray(data, dtype=float)
    if data.ndim != 2:
        msg = f"観測データは2次元 (T, N) である必要があります: shape={data.shape}"
        raise DataValidationError(msg)
    if lags < 1:
        msg = f"ラグ次数は1以上である必要があります: {lags}"
        raise DataValidationError(msg)
    if not np.all(np.isfinite(data)):
        msg = "観測データに欠損値または無限大が含まれています"
        raise DataValidationError(msg)

    t_full, n = data.shape
    if t_full <= lags:
        msg = f"観測期間数 {t_full} がラグ次数 {lags} 以下です"
        raise DataValidationError(msg)

    Y = data[lags:, :]
    blocks = [data[lags - lag : t_full - lag, :] for lag in range(1, lags + 1)]
    blocks.append(np.ones((t_full - lags, 1)))
    X = np.hstack(blocks)
    return Y, X


@dataclass
class VARData:
    """推定用データ

    Attributes:
        data: 観測パネル (T_full, N)
        lags: ラグ次数 p
        variable_names: 変数名のリスト
        dates: 日付ラベル（CSVに date 列がある場合）
        Y: 被説明変数 (T, N)
        X: 説明変数 (T, K)
    """

    data: np.ndarray
    lags: int
    variable_names: list[str] = field(default_factory=list)
    dates: list[str] = field(default_factory=list)
    Y: np.ndarray = field(init=False, repr=False)
    X: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.data = np.asarray(self.data, dtype=float)
        self.Y, self.X = build_var_matrices(self.data, self.lags)
        if not self.variable_names:
            self.variable_names = [f"y{i}" for i in range(self.n_vars)]
        if len(self.variable_names) != self.n_vars:
            msg = "変数名の数が観測変数の数と一致しません"
            raise DataValidationError(msg)

    @property
    def n_vars(self) -> int:
        """変数数 N"""
        return self.data.shape[1]

    @property
    def n_regressors(self) -> int:
        """説明変数の数 K = N p + 1"""
        return self.X.shape[1]

    @property
    def n_periods(self) -> int:
        """推定期間数 T"""
        return self.Y.shape[0]

    def to_sample_index(self, period: int) -> int:
        """観測パネルの期間インデックスを推定サンプルのインデックスに変換する

        Raises:
            DataValidationError: 初期ラグ期間や範囲外を指す場合
        """
        index = period - self.lags
        if index < 0 or index >= self.n_periods:
            msg = (
                f"期間 {period} は推定サンプル外です"
                f"（有効範囲 {self.lags}..{self.data.shape[0] - 1}）"
            )
            raise DataValidationError(msg)
        return index

    @classmethod
    def from_array(
        cls,
        data: np.ndarray,
        lags: int,
        variable_names: list[str] | None = None,
    ) -> "VARData":
        """配列から構築する"""
        return cls(data=data, lags=lags, variable_names=list(variable_names or []))

    @classmethod
    def from_csv(cls, path: str | Path, lags: int) -> "VARData":
        """CSVファイルから推定データを構築する

        CSVフォーマット: 1行目がヘッダー。先頭列が "date" の場合は日付ラベルとして扱う。

        Args:
            path: CSVファイルパス
            lags: ラグ次数

        Returns:
            VARData インスタンス
        """
        filepath = Path(path)
        raw_text = filepath.read_text(encoding="utf-8")
        lines = [line.strip() for line in raw_text.strip().split("\n") if line.strip()]
        if len(lines) < 2:
            msg = f"CSVにデータ行がありません: {filepath}"
            raise DataValidationError(msg)

        header = [col.strip() for col in lines[0].split(",")]
        has_date = header[0].lower() == "date"
        names = header[1:] if has_date else header

        dates: list[str] = []
        rows: list[list[float]] = []
        for line_no, line in enumerate(lines[1:], start=2):
            values = [v.strip() for v in line.split(",")]
            if len(values) != len(header):
                msg = f"{line_no}行目の列数がヘッダーと一致しません"
                raise DataValidationError(msg)
            if has_date:
                dates.append(values[0])
                values = values[1:]
            try:
                rows.append([float(v) for v in values])
            except ValueError as e:
                msg = f"{line_no}行目に数値でない値があります"
                raise DataValidationError(msg) from e

        return cls(data=np.array(rows), lags=lags, variable_names=names, dates=dates)

    def to_csv(self, path: str | Path) -> None:
        """観測パネルをCSVに書き出す"""
        filepath = Path(path)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        header = ",".join((["date"] if self.dates else []) + self.variable_names)
        lines = [header]
        for t, row in enumerate(self.data):
            values = [f"{v:.10g}" for v in row]
            if self.dates:
                values.insert(0, self.dates[t])
            lines.append(",".join(values))
        filepath.write_text("\n".join(lines) + "\n", encoding="utf-8")
