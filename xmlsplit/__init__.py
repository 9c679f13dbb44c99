from xmlsplit.config import Configuration
from xmlsplit.config import XmlOptions
from xmlsplit.config import read_config
from xmlsplit.mappers import DictMapper
from xmlsplit.mappers import ElementMapper
from xmlsplit.mappers import RecordMapper
from xmlsplit.ranges import ByteRange
from xmlsplit.ranges import plan_ranges
from xmlsplit.reader import RangeReader
from xmlsplit.reader import read_bag
from xmlsplit.reader import read_file
from xmlsplit.reader import read_files
from xmlsplit.reader import read_range
from xmlsplit.writer import StreamingWriter
from xmlsplit.writer import WriterState
from xmlsplit.writer import write_bag
from xmlsplit.writer import write_file
from xmlsplit.writer import write_shards
