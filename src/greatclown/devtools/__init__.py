# どこで: `src/greatclown/devtools/`。
# 何を: `python -m greatclown <cmd>` から呼ばれるコマンド群（render / view）。
