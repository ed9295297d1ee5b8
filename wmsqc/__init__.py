"""wms-qc：库位分配 / 质检状态流转 / 一致性体检。"""

__version__ = "0.1.0"
