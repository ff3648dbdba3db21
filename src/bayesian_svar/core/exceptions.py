"""BSVARカスタム例外階層

FailFast原則に従い、致命的なエラーはサンプリング開始前に報告される。
ドロー単位の数値的失敗はサンプラー内部で棄却として処理される。
"""


class BSVARError(Exception):
    """BSVARの基底例外クラス"""

    pass


class ValidationError(BSVARError):
    """入力バリデーションエラー"""

    pass


class RestrictionValidationError(ValidationError):
    """制約指定が無効または矛盾しているエラー

    同じ (変数, ショック, ホライズン) にゼロ制約と符号制約が同時に課された場合などに発生。
    """

    pass


class DataValidationError(ValidationError):
    """観測データが無効なエラー"""

    pass


class NumericalError(BSVARError):
    """数値計算エラー

    事後共分散が正定値でない場合など、推定を継続できない場合に発生。
    """

    pass


class SingularMatrixError(NumericalError):
    """特異行列エラー

    A0 が数値的に可逆でない場合に発生。ドロー単位では棄却として扱われる。
    """

    pass


class InfeasibleRestriction(BSVARError):
    """ゼロ制約が過剰識別で直交列の零空間が空になるエラー"""

    pass


class ConvergenceError(BSVARError):
    """棄却サンプリングの試行上限に達したエラー

    Attributes:
        attempts: 実行した試行数
        accepted: 受容されたドロー数
        acceptance_rate: 経験的受容率
    """

    def __init__(self, message: str, attempts: int = 0, accepted: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.accepted = accepted
        self.acceptance_rate = accepted / attempts if attempts > 0 else 0.0
