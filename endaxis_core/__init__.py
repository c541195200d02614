"""
endaxis_core

基础设施层（不依赖 Qt，不依赖 rotation_planner）：
- logging_setup / logging_context : 日志初始化与上下文字段
- event_bus / event_types / events : 强类型事件总线
- io     : JSON 存储、分享码编解码、PNG 元数据
- idgen  : ID 生成器
- models : 宽松类型转换工具
"""
