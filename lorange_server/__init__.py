"""
L'Orange 餐厅内容管理后端
"""

__version__ = "1.0.0"
