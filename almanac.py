"""
Chinese almanac (黄历) lookups backed by lunar_python

Daily almanac, lucky days of a month, the 24 solar terms of a year and the
suitable/avoid activities of a date.
"""

import calendar
import logging
from typing import Dict, List, Optional

from lunar_python import Lunar, Solar

from calendar_service import parse_date
from exceptions import AlmanacError, InvalidDateError

logger = logging.getLogger(__name__)


class AlmanacConfig:
    """Constant almanac tables."""

    SOLAR_TERMS = (
        '立春', '雨水', '惊蛰', '春分', '清明', '谷雨',
        '立夏', '小满', '芒种', '夏至', '小暑', '大暑',
        '立秋', '处暑', '白露', '秋分', '寒露', '霜降',
        '立冬', '小雪', '大雪', '冬至', '小寒', '大寒',
    )

    # lunar_python keys for terms that belong to the neighbouring lunar year
    SOLAR_TERM_ALIASES = {
        'DONG_ZHI': '冬至',
        'XIAO_HAN': '小寒',
        'DA_HAN': '大寒',
        'LI_CHUN': '立春',
        'YU_SHUI': '雨水',
        'JING_ZHE': '惊蛰',
        'DA_XUE': '大雪',
    }

    LUCKY_OFFICERS = ('除', '危', '定', '执', '成', '开')

    LUCKY_DAY_TYPES = {
        '除': '除日：为除旧布新之象，宜除服、疗病、出行、嫁娶',
        '危': '危日：为危险之意，宜祈福、安床、纳财，忌登高、行船',
        '定': '定日：为安定之意，宜订婚、嫁娶、开业、安葬',
        '执': '执日：为固执之意，宜捕捉、诉讼、嫁娶、纳财',
        '成': '成日：为成功之意，宜开业、结婚、入学、安葬',
        '开': '开日：为开始之意，宜开业、结婚、入学、旅行',
    }

    SOLAR_TERM_DESCRIPTIONS = {
        '立春': '立春是二十四节气之首，标志着万物复苏的春季开始。',
        '雨水': '雨水节气意味着降雨开始，雨量渐增。',
        '惊蛰': '惊蛰时节，春雷始鸣，惊醒蛰伏于地下越冬的蛰虫。',
        '春分': '春分这天昼夜平分，此后北半球白天渐长，夜晚渐短。',
        '清明': '清明既是节气又是节日，有扫墓祭祖、踏青郊游的习俗。',
        '谷雨': '谷雨是春季最后一个节气，此时降水明显增加，有利于谷物生长。',
        '立夏': '立夏标志着夏季的开始，万物进入生长旺季。',
        '小满': '小满时节，夏熟作物的籽粒开始灌浆饱满，但尚未成熟。',
        '芒种': '芒种是夏季的第三个节气，此时正是南方种稻与北方收麦之时。',
        '夏至': '夏至是北半球白昼最长、黑夜最短的一天。',
        '小暑': '小暑表示夏季炎热天气的开始，但还未达到最热。',
        '大暑': '大暑是一年中最热的节气，高温酷热，雷暴频繁。',
        '立秋': '立秋标志着秋季的开始，暑去凉来。',
        '处暑': '处暑意味着炎热即将过去，暑气逐渐消退。',
        '白露': '白露时节，昼夜温差加大，空气中的水汽凝结成白露。',
        '秋分': '秋分这天昼夜平分，此后北半球白天渐短，夜晚渐长。',
        '寒露': '寒露时节，气温比白露时更低，地面的露水更冷，快要凝结成霜了。',
        '霜降': '霜降是秋季的最后一个节气，意味着天气渐冷，开始有霜。',
        '立冬': '立冬标志着冬季的开始，万物收藏，规避寒冷。',
        '小雪': '小雪时节，气温下降，开始降雪，但雪量较小。',
        '大雪': '大雪时节，雪量增大，气温显著下降。',
        '冬至': '冬至是北半球白昼最短、黑夜最长的一天，此后白昼渐长。',
        '小寒': '小寒是天气寒冷但还没有到极点的意思。',
        '大寒': '大寒是一年中最冷的节气，寒潮南下频繁，气温极低。',
    }

    SOLAR_TERM_CUSTOMS = {
        '立春': ['迎春', '打春', '咬春'],
        '清明': ['扫墓祭祖', '踏青', '插柳', '放风筝'],
        '冬至': ['吃饺子', '吃汤圆', '祭祖'],
    }


def _solar_for(date_string: str) -> Solar:
    year, month, day = parse_date(date_string)
    try:
        days_in_month = calendar.monthrange(year, month)[1]
    except ValueError as e:
        raise InvalidDateError(f"Invalid date '{date_string}': {e}")
    if not 1 <= day <= days_in_month:
        raise InvalidDateError(f"Invalid date '{date_string}': day is out of range for month")
    return Solar.fromYmd(year, month, day)


def solar_term_description(term: str) -> str:
    return AlmanacConfig.SOLAR_TERM_DESCRIPTIONS.get(term, f"{term}是二十四节气之一。")


def solar_term_customs(term: str) -> List[str]:
    return list(AlmanacConfig.SOLAR_TERM_CUSTOMS.get(term, []))


def is_lucky_day(lunar: Lunar) -> bool:
    return lunar.getZhiXing() in AlmanacConfig.LUCKY_OFFICERS


def lucky_day_type(lunar: Lunar) -> str:
    return AlmanacConfig.LUCKY_DAY_TYPES.get(lunar.getZhiXing(), '黄道吉日')


def suitability(lunar: Lunar) -> Dict[str, List[str]]:
    return {
        'suitable': list(lunar.getDayYi()),
        'avoid': list(lunar.getDayJi()),
    }


def _ganzhi(lunar: Lunar) -> Dict[str, str]:
    return {
        'year': lunar.getYearInGanZhi(),
        'month': lunar.getMonthInGanZhi(),
        'day': lunar.getDayInGanZhi(),
        'day_gan': lunar.getDayGan(),
        'day_zhi': lunar.getDayZhi(),
    }


def _current_solar_term(lunar: Lunar) -> Optional[Dict[str, str]]:
    term = lunar.getJieQi()
    if not term:
        return None
    return {'name': term, 'date': lunar.getSolar().toYmd()}


class Almanac:
    """Almanac queries for solar dates."""

    def daily(self, date_string: str) -> Dict:
        logger.info("Almanac lookup: %s", date_string)
        solar = _solar_for(date_string)
        try:
            lunar = solar.getLunar()
            year_zodiac = lunar.getYearShengXiao()
            return {
                'date': {
                    'solar': {
                        'year': solar.getYear(),
                        'month': solar.getMonth(),
                        'day': solar.getDay(),
                        'week': solar.getWeek(),
                    },
                    'lunar': {
                        'year': lunar.getYear(),
                        'month': abs(lunar.getMonth()),
                        'day': lunar.getDay(),
                        'leap': lunar.getMonth() < 0,
                        'month_name': lunar.getMonthInChinese(),
                        'day_name': lunar.getDayInChinese(),
                    },
                    'ganzhi': _ganzhi(lunar),
                },
                'zodiac': {
                    'year': year_zodiac,
                    'day': lunar.getDayShengXiao(),
                    'year_ganzhi': f"{lunar.getYearInGanZhi()}年",
                    'year_shengxiao': f"{year_zodiac}年",
                },
                'constellation': solar.getXingZuo(),
                'jieqi': _current_solar_term(lunar),
                'festival': list(solar.getFestivals()) + list(lunar.getFestivals()),
                'suitability': suitability(lunar),
                'directions': {
                    'xi_shen': lunar.getDayPositionXiDesc(),
                    'cai_shen': lunar.getDayPositionCaiDesc(),
                    'gui_shen': lunar.getDayPositionYangGuiDesc(),
                    'fu_shen': lunar.getDayPositionFuDesc(),
                },
                'peng_zu_bai_ji': [lunar.getPengZuGan(), lunar.getPengZuZhi()],
                'gods': {
                    'lucky': list(lunar.getDayJiShen()),
                    'evil': list(lunar.getDayXiongSha()),
                },
                'twelve_buildings': lunar.getZhiXing(),
                'lunar_mansion': lunar.getXiu(),
            }
        except Exception as e:
            logger.exception("Almanac lookup failed")
            raise AlmanacError(f"Almanac lookup failed: {e}") from e

    def lucky_days(self, year: int, month: int) -> Dict:
        logger.info("Lucky day lookup: %s-%s", year, month)
        if not 1 <= month <= 12:
            raise InvalidDateError(f"month must be between 1 and 12, got {month}")
        days = []
        try:
            for day in range(1, calendar.monthrange(year, month)[1] + 1):
                solar = Solar.fromYmd(year, month, day)
                lunar = solar.getLunar()
                if not is_lucky_day(lunar):
                    continue
                days.append({
                    'date': solar.toYmd(),
                    'lunar_date': f"{lunar.getMonthInChinese()}月{lunar.getDayInChinese()}",
                    'ganzhi': lunar.getDayInGanZhi(),
                    'suitable': list(lunar.getDayYi()),
                    'lucky_type': lucky_day_type(lunar),
                })
        except Exception as e:
            logger.exception("Lucky day lookup failed")
            raise AlmanacError(f"Lucky day lookup failed: {e}") from e

        return {'year': year, 'month': month, 'count': len(days), 'days': days}

    def solar_terms(self, year: int) -> Dict:
        logger.info("Solar term lookup: %s", year)
        try:
            # The lunar year's table runs from the previous winter solstice into the next year
            table = Solar.fromYmd(year, 6, 1).getLunar().getJieQiTable()
            found = {}
            for key, solar in table.items():
                name = AlmanacConfig.SOLAR_TERM_ALIASES.get(key, key)
                if name not in AlmanacConfig.SOLAR_TERMS or solar.getYear() != year:
                    continue
                found[name] = solar
        except Exception as e:
            logger.exception("Solar term lookup failed")
            raise AlmanacError(f"Solar term lookup failed: {e}") from e

        terms = [
            {
                'name': name,
                'date': solar.toYmd(),
                'time': solar.toYmdHms().split(' ')[1],
                'description': solar_term_description(name),
                'customs': solar_term_customs(name),
            }
            for name, solar in sorted(found.items(), key=lambda item: item[1].toYmdHms())
        ]
        starts = {term['name']: term['date'] for term in terms}
        return {
            'year': year,
            'terms': terms,
            'spring_start': starts.get('立春'),
            'summer_start': starts.get('立夏'),
            'autumn_start': starts.get('立秋'),
            'winter_start': starts.get('立冬'),
        }

    def suitable_avoid(self, date_string: str) -> Dict:
        lunar = _solar_for(date_string).getLunar()
        return {'date': date_string, **suitability(lunar)}
