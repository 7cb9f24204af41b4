"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- PhaseService：固定的 ban/pick 順序與階段判斷
- NamingService：draft 代碼與預設名稱生成
- CatalogService：從 Data Dragon 取得英雄目錄
"""
