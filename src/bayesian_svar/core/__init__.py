"""構造VARの基礎計算（写像・IRF・線形代数・ヤコビアン）"""
