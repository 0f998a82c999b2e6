"""User-facing strings. The studio's display language is Vietnamese."""

from __future__ import annotations

FALLBACK_STYLES: tuple[str, ...] = (
    "Tối giản & Sạch sẽ",
    "Sống động & Năng động",
    "Sang trọng & Thanh lịch",
    "Tương lai & Công nghệ",
)

FALLBACK_STRATEGY_REASON = (
    "Không thể phân tích nội dung bài viết. Mặc định đề xuất sử dụng người mẫu "
    "để tăng tính tương tác."
)

STYLE_FALLBACK_ADVISORY = "Không thể lấy gợi ý phong cách. Sử dụng các phong cách mặc định."
STRATEGY_FALLBACK_ADVISORY = "Không thể phân tích chiến lược. Đang dùng đề xuất mặc định."

PRODUCT_REQUIRED = "Vui lòng tải lên ảnh Sản Phẩm để tiếp tục."
NO_STYLES = "Không có đủ phong cách được gợi ý để bắt đầu tạo ảnh."
ARTICLE_REQUIRED = "Vui lòng nhập nội dung bài viết trước khi phân tích."
BATCH_IN_FLIGHT = "Đang tạo ảnh, vui lòng chờ."
BATCH_FAILED = "Tạo ảnh thất bại. Vui lòng thử lại."
REGEN_IN_FLIGHT = "Đang tạo lại một phong cách khác, vui lòng chờ."
NO_IMAGE_RETURNED = "Mô hình không trả về hình ảnh."
EMPTY_UPLOAD = "Tệp tải lên trống."
NOT_AN_IMAGE = "Tệp tải lên không phải là hình ảnh hợp lệ."
SESSION_NOT_FOUND = "Không tìm thấy phiên làm việc."


def regen_failed(style: str) -> str:
    return f"Tạo lại phong cách '{style}' thất bại."


def unknown_style(style: str) -> str:
    return f"Không tìm thấy phong cách '{style}' trong kết quả hiện tại."


def invalid_choice(field: str, value: str) -> str:
    return f"Giá trị không hợp lệ cho '{field}': {value}"


LOADING_MESSAGES: tuple[str, ...] = (
    "Đang dựng bối cảnh...",
    "Đang tạo các biến thể phong cách...",
    "Đang hoàn thiện các ấn phẩm...",
    "AI đang sáng tạo, vui lòng chờ...",
)

PERSONA_LABELS: dict[str, str] = {
    "female-asian": "Nữ (Châu Á)",
    "male-asian": "Nam (Châu Á)",
    "female-european": "Nữ (Châu Âu)",
    "male-european": "Nam (Châu Âu)",
}

SLOT_LABELS: dict[str, str] = {
    "product": "Ảnh Sản Phẩm (*)",
    "logo": "Ảnh Logo",
    "model": "Ảnh Người Mẫu",
}
