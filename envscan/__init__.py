"""envscan - 静态扫描 JavaScript 代码中的 process.env 访问"""

__version__ = "0.1.0"
