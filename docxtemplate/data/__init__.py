"""数据处理模块.

docxtemplate/data/
├── __init__.py
├── exceptions.py          # 异常定义
├── models.py              # 数据模型定义
├── aspect_ratio.py        # 图片尺寸计算
├── image_probe.py         # 图片探测
├── traverser.py           # 文档遍历
├── run_sequence.py        # 段落文本块序列
├── reconstructor.py       # 段落文本重建
├── placeholder_matcher.py # 占位符匹配
├── run_rewriter.py        # 文本块改写
├── image_resolver.py      # 图片占位符解析
├── document_io.py         # 文档读写操作
└── report_generator.py    # 扫描报告生成
"""
