"""
rotation_planner

排轴规划器核心：
- core.models   : 数据模型（轨道 / 动作 / 连线 / 方案 / 项目文档）
- core.services : 命令服务（实体编辑、历史、方案、连线、选择与剪贴板、项目导入导出）
- sim           : 资源曲线推演（技力 / 终结技能量 / 失衡）

本包不依赖 Qt；Qt 宿主适配见 qtui。
"""
