"""
核心模块：异常定义与全局异常处理
"""
