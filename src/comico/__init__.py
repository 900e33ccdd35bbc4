"""
Comico - 照片 + 故事生成多格漫画
"""
__version__ = "0.1.0"
