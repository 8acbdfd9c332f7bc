"""
キャンバス変化検出

同じ見た目の再描画でOCRを呼ばないための粗い比較
"""

import math
from typing import AnyStr, Optional, Sequence

SIZE_CHANGE_THRESHOLD = 1000
SAMPLE_POINTS = (0.25, 0.5, 0.75)
SAMPLE_LENGTH = 100


def has_significant_change(
    new_data: AnyStr,
    previous_data: Optional[AnyStr],
    size_threshold: int = SIZE_CHANGE_THRESHOLD,
    sample_points: Sequence[float] = SAMPLE_POINTS,
    sample_length: int = SAMPLE_LENGTH,
) -> bool:
    """新しいスナップショットが前回から十分に変化したか判定する

    データ長の差がしきい値を超えるか、サンプル位置の部分列が2箇所以上
    異なる場合に有意な変化とみなす。

    Args:
        new_data: 新しいスナップショット（エンコード済み文字列またはバイト列）
        previous_data: 前回のスナップショット（なければNone）
        size_threshold: データ長の差のしきい値
        sample_points: 比較位置（0〜1の相対位置）
        sample_length: 各位置で比較する長さ

    Returns:
        bool: 分析を進めるべきならTrue
    """
    if previous_data is None:
        return True

    significant_size_change = abs(len(new_data) - len(previous_data)) > size_threshold

    difference_count = 0
    for point in sample_points:
        index = math.floor(len(new_data) * point)
        old_index = math.floor(len(previous_data) * point)

        if index < len(new_data) and old_index < len(previous_data):
            new_sample = new_data[index:index + sample_length]
            old_sample = previous_data[old_index:old_index + sample_length]
            if new_sample != old_sample:
                difference_count += 1

    return significant_size_change or difference_count >= 2
