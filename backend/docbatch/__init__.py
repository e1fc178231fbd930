"""
模板批量出图系统 - 后端核心模块

模块结构：
- config/     运行期配置与模板文件加载
- models/     数据模型定义
- importer/   表格数据导入（xlsx/csv）
- render/     单位换算/背景解析/标记投影/PDF渲染
- pipeline/   批量生成编排
- storage/    源文档落盘
- api/        FastAPI 接口层
"""

__version__ = "0.1.0"
