# どこで: `src/greatclown/interactive/__init__.py`。
# 何を: キー操作による再生成/保存と pyglet ビューア。
# なぜ: ウィンドウ依存をこの層に閉じ込め、core/export をヘッドレスに保つため。
