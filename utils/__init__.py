from utils.logger import logger, scenario_logger
from utils.screenshot import build_screenshot_path, sanitize_filename
from utils.allure_helper import allure_step, attach_file, attach_text, step

__all__ = [
    "logger",
    "scenario_logger",
    "build_screenshot_path",
    "sanitize_filename",
    "allure_step",
    "attach_file",
    "attach_text",
    "step",
]
