# どこで: `src/greatclown/core/__init__.py`。
# 何を: 幾何・乱数・構図生成のコア層。
# なぜ: interactive / export から独立したヘッドレスな計算層を分けるため。
