# どこで: `src/greatclown/export/__init__.py`。
# 何を: Layer 列の画像ファイル（PNG）出力。
