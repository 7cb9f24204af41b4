"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理 draft 的所有狀態轉換（純函數，不碰儲存）
- DraftManager：管理 draft 的建立、加入、準備、選角與過期
- DraftStore：memory / SQL / tiered 三種儲存實作
- Locks：並發控制工具（row lock + version compare-and-swap）
"""
